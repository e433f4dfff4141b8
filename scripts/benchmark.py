from __future__ import annotations

import argparse
import time
from pathlib import Path

from caption_generator.data import ItemSet
from caption_generator.export import DatasetArchiveExporter, LooseFileExporter


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark caption export")
    parser.add_argument("folder", type=Path, help="Folder of images with optional .txt captions")
    parser.add_argument("--output", type=Path, default=Path("outputs/benchmark.zip"), help="Archive path")
    parser.add_argument("--buffer-kb", type=int, default=256, help="Archive buffer size in KiB")
    parser.add_argument("--loose", action="store_true", help="Also time writing sidecar files")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if not args.folder.is_dir():
        raise SystemExit(f"Folder not found: {args.folder}")

    items = ItemSet.from_folder(args.folder)
    if not len(items):
        raise SystemExit("Folder does not contain any supported images")

    exporter = DatasetArchiveExporter(buffer_size=args.buffer_kb * 1024)
    start = time.time()
    exporter.export_to_path(items.snapshot(), args.output)
    duration = time.time() - start
    size_mb = args.output.stat().st_size / (1024 * 1024)
    print(f"Archived {len(items)} images ({size_mb:.1f} MiB) in {duration:.2f}s")

    if args.loose:
        start = time.time()
        outcomes = LooseFileExporter().export(items.snapshot())
        duration = time.time() - start
        print(f"Wrote {sum(o.ok for o in outcomes)} caption files in {duration:.2f}s")


if __name__ == "__main__":
    main()
