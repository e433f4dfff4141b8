from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .logging import get_logger


log = get_logger(__name__)

OUTPUT_FORMAT_PLACEHOLDER = "{output_format}"


class SettingsError(LookupError):
    pass


class TemplateNotFoundError(SettingsError):
    pass


class EndpointNotFoundError(SettingsError):
    pass


@dataclass
class EndpointBinding:
    name: str
    provider: str
    url: str
    model_identifier: str


@dataclass
class PromptTemplate:
    name: str
    prompt: str
    endpoint: str
    output_format: str = "Text"

    def render(self) -> str:
        return self.prompt.replace(OUTPUT_FORMAT_PLACEHOLDER, self.output_format)


@dataclass
class Settings:
    endpoints: list[EndpointBinding] = field(default_factory=list)
    templates: list[PromptTemplate] = field(default_factory=list)
    enable_async_processing: bool = False
    max_concurrency: int = 4
    export_workers: int = 16
    request_timeout: float = 120.0
    # Whether a freshly generated caption counts as saved.
    persist_generated: bool = False

    @property
    def concurrency_limit(self) -> int:
        return max(1, self.max_concurrency) if self.enable_async_processing else 1

    def get_template(self, name: str) -> PromptTemplate:
        for template in self.templates:
            if template.name == name:
                return template
        raise TemplateNotFoundError(f"No prompt template named {name!r}")

    def resolve_endpoint(self, template: PromptTemplate) -> EndpointBinding:
        for endpoint in self.endpoints:
            if endpoint.name == template.endpoint:
                return endpoint
        raise EndpointNotFoundError(
            f"Template {template.name!r} points at unknown endpoint {template.endpoint!r}"
        )


def settings_from_dict(raw: dict[str, Any]) -> Settings:
    payload = dict(raw)
    endpoints = [EndpointBinding(**entry) for entry in payload.pop("endpoints", None) or []]
    templates = [PromptTemplate(**entry) for entry in payload.pop("templates", None) or []]
    return Settings(endpoints=endpoints, templates=templates, **payload)


def load_settings(path: Path | None = None) -> Settings:
    if path and path.exists():
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        settings = settings_from_dict(raw)
        log.info(
            "Loaded %d endpoints and %d templates from %s",
            len(settings.endpoints),
            len(settings.templates),
            path,
        )
        return settings
    return Settings()
