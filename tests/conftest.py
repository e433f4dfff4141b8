from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, Iterable, Sequence

import pytest
from PIL import Image

from caption_generator.clients import CaptionServiceClient, CaptionServiceError
from caption_generator.data import CaptionItem


def write_image(path: Path, color: tuple[int, int, int] = (200, 30, 30), fmt: str | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (8, 8), color).save(path, format=fmt)
    return path


def name_reader(path: Path) -> bytes:
    return path.name.encode("utf-8")


def make_items(count: int, caption: str = "") -> list[CaptionItem]:
    return [
        CaptionItem(
            image_path=Path(f"/data/img{index:02d}.png"),
            extension=".png",
            caption=caption,
            persisted_caption=caption,
        )
        for index in range(count)
    ]


class FakeClient(CaptionServiceClient):
    """Captions ``name_reader`` payloads as ``caption:<name>``.

    Names listed in ``failures`` raise CaptionServiceError. ``watch`` items are
    sampled on every call to record how many were processing at once.
    """

    def __init__(
        self,
        failures: Iterable[str] = (),
        delay: float | Callable[[str], float] = 0.0,
        watch: Sequence[CaptionItem] = (),
        on_call: Callable[[str], None] | None = None,
    ) -> None:
        self.failures = set(failures)
        self.delay = delay
        self.watch = watch
        self.on_call = on_call
        self.calls: list[str] = []
        self.max_active = 0
        self.max_processing = 0
        self._active = 0
        self._lock = threading.Lock()

    def generate_caption(self, image_bytes: bytes, prompt: str) -> str:
        name = image_bytes.decode("utf-8")
        with self._lock:
            self.calls.append(name)
            self._active += 1
            self.max_active = max(self.max_active, self._active)
            processing = sum(1 for item in self.watch if item.is_processing)
            self.max_processing = max(self.max_processing, processing)
        try:
            if self.on_call is not None:
                self.on_call(name)
            delay = self.delay(name) if callable(self.delay) else self.delay
            if delay:
                time.sleep(delay)
            if name in self.failures:
                raise CaptionServiceError(f"boom on {name}")
            return f"caption:{name}"
        finally:
            with self._lock:
                self._active -= 1


@pytest.fixture
def image_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "images"
    write_image(folder / "b.PNG", (0, 0, 255), fmt="PNG")
    write_image(folder / "a.jpg", (255, 0, 0), fmt="JPEG")
    write_image(folder / "c.jpeg", (0, 255, 0), fmt="JPEG")
    write_image(folder / "d.bmp", (9, 9, 9), fmt="BMP")
    (folder / "notes.md").write_text("not an image", encoding="utf-8")
    (folder / "e.gif").write_bytes(b"GIF89a")
    return folder
