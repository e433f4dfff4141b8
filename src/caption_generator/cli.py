from __future__ import annotations

import argparse
import threading
from pathlib import Path

from tqdm.auto import tqdm

from .clients import UnsupportedProviderError
from .config import Settings, SettingsError, load_settings
from .data import CaptionItem, ItemSet
from .export import ArchiveExportError, DatasetArchiveExporter, LooseFileExporter
from .logging import get_logger
from .pipeline import CaptioningOrchestrator, ConsoleResolver, plan_batch, skip_policy, stop_policy


log = get_logger(__name__)

DEFAULT_CONFIG = Path("caption_generator.yaml")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Batch image captioning CLI")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="YAML settings path")
    sub = parser.add_subparsers(dest="command", required=True)

    caption = sub.add_parser("caption", help="Generate captions for a folder of images")
    caption.add_argument("folder", type=Path)
    caption.add_argument("--template", required=True, help="Prompt template name")
    caption.add_argument(
        "--on-error",
        choices=("ask", "skip", "stop"),
        default="ask",
        help="What to do when an image fails",
    )
    caption.add_argument("--dataset", type=Path, help="Write a dataset zip instead of sidecar files")
    caption.add_argument("--no-save", action="store_true", help="Do not save captions afterwards")

    export = sub.add_parser("export", help="Package existing captions into a dataset zip")
    export.add_argument("folder", type=Path)
    export.add_argument("--dataset", type=Path, required=True)

    sub.add_parser("templates", help="List prompt templates")

    return parser.parse_args(argv)


def build_resolver(mode: str):
    if mode == "skip":
        return skip_policy
    if mode == "stop":
        return stop_policy
    return ConsoleResolver()


def save_items(items: ItemSet, settings: Settings, dataset: Path | None) -> bool:
    if dataset is not None:
        try:
            DatasetArchiveExporter().export_to_path(items.snapshot(), dataset)
        except ArchiveExportError as exc:
            print(exc)
            return False
        return True

    outcomes = LooseFileExporter(max_workers=settings.export_workers).export(items.snapshot())
    failed = [outcome for outcome in outcomes if not outcome.ok]
    for outcome in failed:
        print(f"Could not save {outcome.path}: {outcome.error}")
    return not failed


def run_caption(args: argparse.Namespace, settings: Settings) -> int:
    items = ItemSet.from_folder(args.folder)
    if not len(items):
        raise SystemExit(f"No images found in {args.folder}")

    client, prompt = plan_batch(settings, args.template)
    progress = tqdm(total=len(items), unit="img")
    lock = threading.Lock()

    def on_event(index: int, item: CaptionItem, event: str) -> None:
        if event == "finished":
            with lock:
                progress.update(1)

    orchestrator = CaptioningOrchestrator(
        client=client,
        resolver=build_resolver(args.on_error),
        persist_generated=settings.persist_generated,
        listener=on_event,
    )
    try:
        result = orchestrator.run_batch(items.snapshot(), prompt, settings.concurrency_limit)
    finally:
        progress.close()
        client.close()

    if result.cancelled:
        log.warning("Batch was stopped; saving the captions generated so far")
    if args.no_save:
        return 0
    return 0 if save_items(items, settings, args.dataset) else 1


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings(args.config)

    try:
        if args.command == "caption":
            return run_caption(args, settings)

        if args.command == "export":
            items = ItemSet.from_folder(args.folder)
            return 0 if save_items(items, settings, args.dataset) else 1

        if args.command == "templates":
            for template in settings.templates:
                print(f"{template.name}\t{template.endpoint}\t{template.output_format}")
            return 0
    except (SettingsError, UnsupportedProviderError) as exc:
        raise SystemExit(str(exc)) from exc
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
