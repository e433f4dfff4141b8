import io
import zipfile
from pathlib import Path

import pytest
from conftest import FakeClient, write_image

from caption_generator.data import CaptionItem, ItemSet
from caption_generator.export import ArchiveExportError, DatasetArchiveExporter, entry_names, index_width
from caption_generator.pipeline import CaptioningOrchestrator


@pytest.mark.parametrize(
    ("count", "width"),
    [(0, 3), (1, 3), (12, 3), (1000, 3), (1001, 4), (1500, 4), (10001, 5)],
)
def test_index_width(count: int, width: int) -> None:
    assert index_width(count) == width


def test_entry_names_are_zero_padded() -> None:
    assert entry_names(7, 3, ".jpeg") == ("007.jpeg", "007.txt")
    assert entry_names(1499, 4, ".png") == ("1499.png", "1499.txt")


def _items(folder: Path, count: int) -> list[CaptionItem]:
    items = []
    for index in range(count):
        ext = ".png" if index % 2 else ".jpg"
        path = write_image(folder / f"img{index}{ext}", (index * 10, 0, 0))
        items.append(
            CaptionItem(image_path=path, extension=ext, caption=f"caption {index} ünïcode")
        )
    return items


def test_round_trip_preserves_order_and_bytes(tmp_path: Path) -> None:
    items = _items(tmp_path / "src", 12)
    buffer = io.BytesIO()

    count = DatasetArchiveExporter().export(items, buffer)

    assert count == 12
    with zipfile.ZipFile(io.BytesIO(buffer.getvalue())) as archive:
        infos = archive.infolist()
        names = [info.filename for info in infos]
        expected = []
        for index, item in enumerate(items):
            expected += [f"{index:03d}{item.extension}", f"{index:03d}.txt"]
        assert names == expected

        for index, item in enumerate(items):
            image_info = archive.getinfo(f"{index:03d}{item.extension}")
            caption_info = archive.getinfo(f"{index:03d}.txt")
            assert image_info.compress_type == zipfile.ZIP_STORED
            assert caption_info.compress_type == zipfile.ZIP_DEFLATED
            assert archive.read(image_info) == item.image_path.read_bytes()
            assert archive.read(caption_info) == item.caption.encode("utf-8")
    assert not any(item.is_modified for item in items)


def test_export_to_path_creates_parent(tmp_path: Path) -> None:
    items = _items(tmp_path / "src", 3)
    target = tmp_path / "out" / "Dataset.zip"

    DatasetArchiveExporter(buffer_size=4096).export_to_path(items, target)

    with zipfile.ZipFile(target) as archive:
        assert archive.namelist() == ["000.jpg", "000.txt", "001.png", "001.txt", "002.jpg", "002.txt"]
        assert archive.testzip() is None


def test_unwritable_destination_raises_export_error(tmp_path: Path) -> None:
    items = _items(tmp_path / "src", 2)
    target = tmp_path / "Dataset.zip"
    target.mkdir()

    with pytest.raises(ArchiveExportError) as excinfo:
        DatasetArchiveExporter().export_to_path(items, target)

    assert isinstance(excinfo.value.__cause__, OSError)
    assert all(item.is_modified for item in items)


def test_raw_stream_is_buffered_and_left_open(tmp_path: Path) -> None:
    items = _items(tmp_path / "src", 2)
    target = tmp_path / "raw.zip"

    with open(target, "wb", buffering=0) as raw:
        DatasetArchiveExporter().export(items, raw)
        assert not raw.closed

    with zipfile.ZipFile(target) as archive:
        assert len(archive.namelist()) == 4


def test_missing_image_aborts_export(tmp_path: Path) -> None:
    items = _items(tmp_path / "src", 3)
    items[1].image_path.unlink()

    with pytest.raises(ArchiveExportError) as excinfo:
        DatasetArchiveExporter().export(items, io.BytesIO())

    assert isinstance(excinfo.value.__cause__, FileNotFoundError)
    assert all(item.is_modified for item in items)


def test_archive_order_ignores_caption_completion_order(image_folder: Path) -> None:
    items = ItemSet.from_folder(image_folder)
    # Later items finish first.
    delays = {item.image_path.name: 0.04 - 0.01 * index for index, item in enumerate(items)}

    client = FakeClient(delay=lambda name: delays[name])
    CaptioningOrchestrator(client=client, reader=lambda path: path.name.encode("utf-8")).run_batch(
        items, "p", concurrency_limit=4
    )
    buffer = io.BytesIO()
    DatasetArchiveExporter().export(items.snapshot(), buffer)

    with zipfile.ZipFile(io.BytesIO(buffer.getvalue())) as archive:
        assert archive.namelist() == [
            "000.jpg", "000.txt", "001.png", "001.txt", "002.jpeg", "002.txt", "003.bmp", "003.txt",
        ]
        assert archive.read("001.txt") == b"caption:b.PNG"
