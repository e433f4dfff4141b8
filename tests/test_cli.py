import functools
import zipfile
from pathlib import Path

import pytest
from conftest import FakeClient, name_reader

from caption_generator import cli
from caption_generator.pipeline import CaptioningOrchestrator


class ClosingClient(FakeClient):
    closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_backend(monkeypatch):
    def install(client: FakeClient) -> None:
        monkeypatch.setattr(cli, "plan_batch", lambda settings, name: (client, f"prompt for {name}"))
        monkeypatch.setattr(
            cli,
            "CaptioningOrchestrator",
            functools.partial(CaptioningOrchestrator, reader=name_reader),
        )

    return install


def _run(tmp_path: Path, *args: str) -> int:
    return cli.main(["--config", str(tmp_path / "none.yaml"), *args])


def test_caption_command_writes_sidecars(image_folder: Path, tmp_path: Path, fake_backend) -> None:
    client = ClosingClient(failures={"c.jpeg"})
    fake_backend(client)

    code = _run(tmp_path, "caption", str(image_folder), "--template", "t", "--on-error", "skip")

    assert code == 0
    assert client.closed
    assert (image_folder / "a.txt").read_text(encoding="utf-8") == "caption:a.jpg"
    assert (image_folder / "d.txt").read_text(encoding="utf-8") == "caption:d.bmp"
    # Skipped items keep their empty caption, which is still written out.
    assert (image_folder / "c.txt").read_text(encoding="utf-8") == ""


def test_caption_command_can_write_dataset(image_folder: Path, tmp_path: Path, fake_backend) -> None:
    fake_backend(ClosingClient())
    dataset = tmp_path / "Dataset.zip"

    code = _run(tmp_path, "caption", str(image_folder), "--template", "t", "--dataset", str(dataset))

    assert code == 0
    with zipfile.ZipFile(dataset) as archive:
        assert archive.read("000.txt") == b"caption:a.jpg"
    assert not (image_folder / "a.txt").exists()


def test_caption_command_no_save(image_folder: Path, tmp_path: Path, fake_backend) -> None:
    fake_backend(ClosingClient())

    assert _run(tmp_path, "caption", str(image_folder), "--template", "t", "--no-save") == 0
    assert not list(image_folder.glob("*.txt"))


def test_export_command_packages_existing_captions(image_folder: Path, tmp_path: Path) -> None:
    (image_folder / "b.txt").write_text("blue", encoding="utf-8")
    dataset = tmp_path / "out.zip"

    assert _run(tmp_path, "export", str(image_folder), "--dataset", str(dataset)) == 0

    with zipfile.ZipFile(dataset) as archive:
        assert archive.read("001.txt") == b"blue"
        assert archive.read("000.txt") == b""


def test_unknown_template_exits(image_folder: Path, tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        _run(tmp_path, "caption", str(image_folder), "--template", "missing")


def test_export_command_reports_unwritable_dataset(image_folder: Path, tmp_path: Path, capsys) -> None:
    dataset = tmp_path / "taken"
    dataset.mkdir()

    assert _run(tmp_path, "export", str(image_folder), "--dataset", str(dataset)) == 1
    assert "Error saving dataset" in capsys.readouterr().out
