from __future__ import annotations

import requests

from ..config import EndpointBinding
from .base import CaptionServiceClient, CaptionServiceError, HttpCaptionClient, ProviderKind, UnsupportedProviderError
from .ollama import OllamaClient
from .openai_compat import OpenAICompatibleClient

_CLIENTS: dict[ProviderKind, type[HttpCaptionClient]] = {
    ProviderKind.ollama: OllamaClient,
    ProviderKind.lm_studio: OpenAICompatibleClient,
    ProviderKind.llama_cpp: OpenAICompatibleClient,
    ProviderKind.oobabooga: OpenAICompatibleClient,
}


def create_client(
    binding: EndpointBinding,
    session: requests.Session | None = None,
    timeout: float = 120.0,
) -> HttpCaptionClient:
    kind = ProviderKind.parse(binding.provider)
    client_cls = _CLIENTS[kind]
    return client_cls(binding.url, binding.model_identifier, session=session, timeout=timeout)


__all__ = [
    "CaptionServiceClient",
    "CaptionServiceError",
    "HttpCaptionClient",
    "OllamaClient",
    "OpenAICompatibleClient",
    "ProviderKind",
    "UnsupportedProviderError",
    "create_client",
]
