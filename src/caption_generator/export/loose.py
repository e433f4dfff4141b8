from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ..data.items import CaptionItem
from ..logging import get_logger


log = get_logger(__name__)

DEFAULT_EXPORT_WORKERS = 16


@dataclass
class ExportOutcome:
    item: CaptionItem
    path: Path
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class LooseFileExporter:
    """Write each caption to ``<image stem>.txt`` beside its image.

    Items are independent: one unwritable file does not stop the others.
    """

    max_workers: int = DEFAULT_EXPORT_WORKERS

    def export(self, items: Sequence[CaptionItem]) -> list[ExportOutcome]:
        snapshot = tuple(items)
        if not snapshot:
            return []
        workers = max(1, min(self.max_workers, len(snapshot)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="export") as executor:
            outcomes = list(executor.map(self._write_one, snapshot))

        failures = [outcome for outcome in outcomes if not outcome.ok]
        log.info("Saved %d captions (%d failed)", len(outcomes) - len(failures), len(failures))
        return outcomes

    def _write_one(self, item: CaptionItem) -> ExportOutcome:
        target = item.caption_path
        caption = item.caption
        try:
            target.write_bytes(caption.encode("utf-8"))
        except (OSError, UnicodeError) as exc:
            log.warning("Failed to save caption for %s: %s", item.image_path, exc)
            return ExportOutcome(item=item, path=target, error=str(exc))
        # A concurrent edit after the snapshot of ``caption`` stays modified.
        item.persisted_caption = caption
        return ExportOutcome(item=item, path=target)
