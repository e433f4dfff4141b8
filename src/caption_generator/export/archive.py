from __future__ import annotations

import io
import shutil
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Sequence

from ..data.items import CAPTION_SUFFIX, CaptionItem
from ..logging import get_logger


log = get_logger(__name__)

# Output and image reads share one buffer size for large sequential I/O.
ARCHIVE_BUFFER_SIZE = 256 * 1024
MIN_INDEX_WIDTH = 3
CAPTION_COMPRESSLEVEL = 1


class ArchiveExportError(RuntimeError):
    pass


def index_width(count: int) -> int:
    """Digits used for entry names: at least three, enough for ``count - 1``."""
    max_index = max(count - 1, 0)
    return max(MIN_INDEX_WIDTH, len(str(max_index)))


def entry_names(index: int, width: int, extension: str) -> tuple[str, str]:
    stem = str(index).zfill(width)
    return f"{stem}{extension}", f"{stem}{CAPTION_SUFFIX}"


@dataclass
class DatasetArchiveExporter:
    """Write items into a zip as ``000.jpg``/``000.txt`` pairs in item order.

    Images are stored uncompressed and streamed from disk; captions are
    deflated at the fastest level. Entries are written one at a time since a
    zip cannot take concurrent writers.
    """

    buffer_size: int = ARCHIVE_BUFFER_SIZE

    def export_to_path(self, items: Sequence[CaptionItem], destination: Path) -> int:
        destination = Path(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(destination, "wb", buffering=self.buffer_size) as stream:
                count = self._write(items, stream)
        except OSError as exc:
            log.error("Cannot write dataset archive %s: %s", destination, exc)
            raise ArchiveExportError(f"Error saving dataset: {exc}") from exc
        log.info("Wrote dataset archive with %d pairs to %s", count, destination)
        return count

    def export(self, items: Sequence[CaptionItem], destination: BinaryIO) -> int:
        """Write the archive into a caller-owned binary stream, which is left open."""
        if isinstance(destination, io.RawIOBase):
            buffered = io.BufferedWriter(destination, buffer_size=self.buffer_size)
            try:
                count = self._write(items, buffered)
                buffered.flush()
            finally:
                buffered.detach()
        else:
            count = self._write(items, destination)
            destination.flush()
        log.info("Wrote dataset archive with %d pairs", count)
        return count

    def _write(self, items: Sequence[CaptionItem], stream: BinaryIO) -> int:
        snapshot = tuple(items)
        width = index_width(len(snapshot))
        timestamp = time.localtime()[:6]
        try:
            with zipfile.ZipFile(stream, mode="w", allowZip64=True) as archive:
                for index, item in enumerate(snapshot):
                    image_name, caption_name = entry_names(index, width, item.extension)
                    self._write_image(archive, image_name, item.image_path, timestamp)
                    caption_info = zipfile.ZipInfo(caption_name, date_time=timestamp)
                    # One encode pass per caption; str.encode has no reusable output buffer.
                    archive.writestr(
                        caption_info,
                        item.caption.encode("utf-8"),
                        compress_type=zipfile.ZIP_DEFLATED,
                        compresslevel=CAPTION_COMPRESSLEVEL,
                    )
        except Exception as exc:
            log.exception("Dataset export aborted")
            raise ArchiveExportError(f"Error saving dataset: {exc}") from exc

        for item in snapshot:
            item.mark_persisted()
        return len(snapshot)

    def _write_image(
        self,
        archive: zipfile.ZipFile,
        name: str,
        source: Path,
        timestamp: tuple[int, ...],
    ) -> None:
        info = zipfile.ZipInfo(name, date_time=timestamp)
        info.compress_type = zipfile.ZIP_STORED
        info.file_size = source.stat().st_size
        with open(source, "rb", buffering=self.buffer_size) as src:
            with archive.open(info, mode="w") as dst:
                shutil.copyfileobj(src, dst, self.buffer_size)
