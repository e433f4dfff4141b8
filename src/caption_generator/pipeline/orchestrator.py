from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional

import requests

from ..clients import CaptionServiceClient, create_client
from ..config import Settings
from ..data.items import CaptionItem
from ..logging import get_logger
from ..utils.image_io import read_image_bytes
from .escalation import Decision, ErrorEscalationCoordinator, Resolver, skip_policy


log = get_logger(__name__)

Listener = Callable[[int, CaptionItem, str], None]


class ItemStatus(str, Enum):
    captioned = "captioned"
    skipped = "skipped"
    stopped = "stopped"
    cancelled = "cancelled"


@dataclass
class ItemOutcome:
    index: int
    item: CaptionItem
    status: ItemStatus
    error: Optional[str] = None


@dataclass
class BatchResult:
    outcomes: list[ItemOutcome] = field(default_factory=list)
    cancelled: bool = False

    def with_status(self, status: ItemStatus) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is status]

    @property
    def captioned(self) -> list[ItemOutcome]:
        return self.with_status(ItemStatus.captioned)

    @property
    def failed(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if o.status in (ItemStatus.skipped, ItemStatus.stopped)]


@dataclass
class CaptioningOrchestrator:
    """Run one captioning batch over a snapshot of items.

    With ``concurrency_limit == 1`` items run strictly in order; above that they
    go through a thread pool of that width. Every worker checks the shared
    cancellation event before starting an item, and requests already in flight
    are left to finish.
    """

    client: CaptionServiceClient
    resolver: Resolver = skip_policy
    persist_generated: bool = False
    listener: Optional[Listener] = None
    reader: Callable[[Path], bytes] = read_image_bytes

    def run_batch(
        self,
        items: Iterable[CaptionItem],
        prompt: str,
        concurrency_limit: int = 1,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        snapshot = tuple(items)
        coordinator = ErrorEscalationCoordinator(self.resolver, cancel_event)
        log.info(
            "Captioning %d images with concurrency %d",
            len(snapshot),
            max(1, concurrency_limit),
        )

        if concurrency_limit <= 1:
            outcomes = self._run_sequential(snapshot, prompt, coordinator)
        else:
            outcomes = self._run_parallel(snapshot, prompt, coordinator, concurrency_limit)

        result = BatchResult(outcomes=outcomes, cancelled=coordinator.cancelled)
        log.info(
            "Batch finished: %d captioned, %d failed, %d not started%s",
            len(result.captioned),
            len(result.failed),
            len(result.with_status(ItemStatus.cancelled)),
            " (cancelled)" if result.cancelled else "",
        )
        return result

    def _run_sequential(
        self,
        snapshot: tuple[CaptionItem, ...],
        prompt: str,
        coordinator: ErrorEscalationCoordinator,
    ) -> list[ItemOutcome]:
        outcomes: list[ItemOutcome] = []
        for index, item in enumerate(snapshot):
            outcomes.append(self._process(index, item, prompt, coordinator))
        return outcomes

    def _run_parallel(
        self,
        snapshot: tuple[CaptionItem, ...],
        prompt: str,
        coordinator: ErrorEscalationCoordinator,
        concurrency_limit: int,
    ) -> list[ItemOutcome]:
        with ThreadPoolExecutor(max_workers=concurrency_limit, thread_name_prefix="caption") as executor:
            futures = [
                executor.submit(self._process, index, item, prompt, coordinator)
                for index, item in enumerate(snapshot)
            ]
            return [future.result() for future in futures]

    def _process(
        self,
        index: int,
        item: CaptionItem,
        prompt: str,
        coordinator: ErrorEscalationCoordinator,
    ) -> ItemOutcome:
        if coordinator.cancelled:
            return ItemOutcome(index, item, ItemStatus.cancelled)

        item.is_processing = True
        self._notify(index, item, "started")
        try:
            try:
                image_bytes = self.reader(item.image_path)
                caption = self.client.generate_caption(image_bytes, prompt)
            except Exception as exc:  # noqa: BLE001
                log.warning("Captioning failed for %s: %s", item.image_path, exc)
                decision = coordinator.escalate(f"{item.image_path.name}: {exc}")
                status = ItemStatus.stopped if decision is Decision.stop else ItemStatus.skipped
                return ItemOutcome(index, item, status, str(exc))
            item.apply_generated(caption, persisted=self.persist_generated)
            return ItemOutcome(index, item, ItemStatus.captioned)
        finally:
            item.is_processing = False
            self._notify(index, item, "finished")

    def _notify(self, index: int, item: CaptionItem, event: str) -> None:
        if self.listener is not None:
            self.listener(index, item, event)


def plan_batch(
    settings: Settings,
    template_name: str,
    session: requests.Session | None = None,
) -> tuple[CaptionServiceClient, str]:
    """Resolve a prompt template to its client and rendered prompt, once per batch."""
    template = settings.get_template(template_name)
    binding = settings.resolve_endpoint(template)
    client = create_client(binding, session=session, timeout=settings.request_timeout)
    log.info("Using endpoint %s (%s, %s)", binding.name, binding.provider, binding.model_identifier)
    return client, template.render()
