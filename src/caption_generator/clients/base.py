from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import requests


class CaptionServiceError(RuntimeError):
    """Transport, HTTP status or malformed response from a captioning endpoint."""


class UnsupportedProviderError(ValueError):
    pass


class ProviderKind(str, Enum):
    ollama = "Ollama"
    lm_studio = "LM Studio"
    llama_cpp = "llama.cpp"
    oobabooga = "Oobabooga"

    @classmethod
    def parse(cls, value: str) -> "ProviderKind":
        wanted = value.strip().casefold()
        for kind in cls:
            if kind.value.casefold() == wanted or kind.name == wanted:
                return kind
        raise UnsupportedProviderError(f"Unsupported provider: {value!r}")


class CaptionServiceClient(ABC):
    @abstractmethod
    def generate_caption(self, image_bytes: bytes, prompt: str) -> str:
        """Return the caption for ``image_bytes``; ``""`` when the model returned nothing.

        Raises CaptionServiceError on transport, HTTP or parsing failures.
        """

    def close(self) -> None:
        pass


class HttpCaptionClient(CaptionServiceClient):
    """Shared plumbing for JSON-over-HTTP providers.

    The session is owned by whoever constructs the client.
    """

    path: str = ""

    def __init__(
        self,
        base_url: str,
        model: str,
        session: requests.Session | None = None,
        timeout: float = 120.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self.path}"

    def _post(self, payload: dict[str, Any]) -> Any:
        try:
            response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.ConnectionError as exc:
            raise CaptionServiceError(f"Cannot reach {self.base_url}: {exc}") from exc
        except requests.exceptions.HTTPError as exc:
            raise CaptionServiceError(
                f"{self.endpoint} returned HTTP {exc.response.status_code if exc.response is not None else '?'}"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise CaptionServiceError(f"Request to {self.endpoint} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise CaptionServiceError(f"{self.endpoint} returned a non-JSON body") from exc

    def close(self) -> None:
        self.session.close()
