from __future__ import annotations

import threading
from enum import Enum
from typing import Callable

from ..logging import get_logger


log = get_logger(__name__)


class Decision(str, Enum):
    stop = "stop"
    skip = "skip"


Resolver = Callable[[str], Decision]


def skip_policy(message: str) -> Decision:
    return Decision.skip


def stop_policy(message: str) -> Decision:
    return Decision.stop


class ConsoleResolver:
    """Ask on the terminal whether to stop the batch or skip the failed image."""

    def __init__(self, input_fn=input, output_fn=print) -> None:
        self._input = input_fn
        self._output = output_fn

    def __call__(self, message: str) -> Decision:
        self._output(f"Error: {message}")
        while True:
            answer = self._input("[s]top or s[k]ip? ").strip().lower()
            if answer in ("s", "stop"):
                return Decision.stop
            if answer in ("k", "skip"):
                return Decision.skip


class ErrorEscalationCoordinator:
    """Serialize failures from concurrent workers into one decision at a time.

    A worker that fails takes the gate; if a peer already stopped the batch it
    gets ``Decision.stop`` back without the resolver being asked again.
    """

    def __init__(self, resolver: Resolver, cancel_event: threading.Event | None = None) -> None:
        self._resolver = resolver
        self._gate = threading.Lock()
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self.prompt_count = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def escalate(self, message: str) -> Decision:
        with self._gate:
            if self.cancel_event.is_set():
                return Decision.stop
            self.prompt_count += 1
            try:
                decision = Decision(self._resolver(message))
            except Exception:
                # Nobody can answer, so nothing further should start.
                self.cancel_event.set()
                raise
            if decision is Decision.stop:
                log.warning("Stopping batch after failure: %s", message)
                self.cancel_event.set()
            else:
                log.info("Skipping failed item: %s", message)
            return decision
