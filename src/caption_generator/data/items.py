from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from ..logging import get_logger
from .extensions import classify_path


log = get_logger(__name__)

CAPTION_SUFFIX = ".txt"


@dataclass(eq=False)
class CaptionItem:
    """One image and the caption text associated with it.

    ``caption`` is the current text (generated or edited), ``persisted_caption``
    is the last value known to be saved. Items compare by identity so that two
    images with the same caption are never confused for each other.
    """

    image_path: Path
    extension: str
    caption: str = ""
    persisted_caption: str = ""
    is_processing: bool = False

    def __post_init__(self) -> None:
        self.image_path = Path(self.image_path)

    @property
    def is_modified(self) -> bool:
        return self.caption != self.persisted_caption

    @property
    def caption_path(self) -> Path:
        return self.image_path.with_suffix(CAPTION_SUFFIX)

    def apply_generated(self, caption: str, persisted: bool = False) -> None:
        self.caption = caption
        if persisted:
            self.persisted_caption = caption

    def edit(self, caption: str) -> None:
        self.caption = caption

    def mark_persisted(self) -> None:
        self.persisted_caption = self.caption

    def load_existing_caption(self) -> bool:
        path = self.caption_path
        if not path.is_file():
            return False
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            log.warning("Caption %s is not valid UTF-8; undecodable bytes were replaced", path)
            text = path.read_text(encoding="utf-8", errors="replace")
        self.caption = text
        self.persisted_caption = text
        return True


class ItemSet(Sequence[CaptionItem]):
    """Ordered collection of caption items for one session."""

    def __init__(self, items: Iterable[CaptionItem] = ()) -> None:
        self._items: list[CaptionItem] = list(items)

    @classmethod
    def from_paths(cls, paths: Iterable[Path], load_existing: bool = True) -> "ItemSet":
        items: list[CaptionItem] = []
        for path in paths:
            extension = classify_path(path)
            if extension is None:
                continue
            item = CaptionItem(image_path=path.resolve(), extension=extension)
            if load_existing:
                item.load_existing_caption()
            items.append(item)
        return cls(items)

    @classmethod
    def from_folder(cls, folder: Path, load_existing: bool = True) -> "ItemSet":
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(f"Not a folder: {folder}")
        paths = sorted((p for p in folder.iterdir() if p.is_file()), key=lambda p: p.name)
        item_set = cls.from_paths(paths, load_existing=load_existing)
        log.info("Discovered %d images in %s", len(item_set), folder)
        return item_set

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):  # type: ignore[override]
        return self._items[index]

    def __iter__(self) -> Iterator[CaptionItem]:
        return iter(self._items)

    def snapshot(self) -> tuple[CaptionItem, ...]:
        return tuple(self._items)

    def replace(self, items: Iterable[CaptionItem]) -> None:
        self._items = list(items)

    def edit(self, index: int, caption: str) -> None:
        self._items[index].edit(caption)

    def modified(self) -> list[CaptionItem]:
        return [item for item in self._items if item.is_modified]

    def processing(self) -> list[CaptionItem]:
        return [item for item in self._items if item.is_processing]
