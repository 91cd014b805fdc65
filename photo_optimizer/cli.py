"""Пакетная оптимизация из командной строки.

usage:
    photo-optimizer photo1.jpg logo.png -o optimized/ [--max-dimension 1600] [--target-bytes 800000]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from photo_optimizer.config import EncoderSettings
from photo_optimizer.models.image_model import QueueItem
from photo_optimizer.services.encoder_service import EncoderService
from photo_optimizer.services.export_service import format_bytes
from photo_optimizer.services.queue_service import QueueService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo-optimizer",
        description="Resize and re-encode photos to JPEG/WebP within a byte budget.",
    )
    parser.add_argument("inputs", nargs="+", help="Source image files")
    parser.add_argument("-o", "--output", default="optimized", help="Output directory (default: ./optimized)")
    parser.add_argument("--max-dimension", type=int, help="Longest edge cap in pixels")
    parser.add_argument("--target-bytes", type=int, help="Soft size budget per file in bytes")
    parser.add_argument("--fallback-ratio", type=float, help="Budget multiple that triggers the second format")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every encode pass")
    return parser


def _describe(item: QueueItem) -> str:
    if item.status == "error" or item.result is None:
        return f"FAIL {item.path}: {item.error}"
    src = item.source
    res = item.result
    before = format_bytes(src.size_bytes) if src is not None else "?"
    return (
        f"OK   {item.path} -> {item.exported_path} "
        f"({res.format}, {res.width}x{res.height}, {before} -> {format_bytes(res.size_bytes)}, q={res.quality:.2f})"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")

    try:
        settings = EncoderSettings.from_env().with_overrides(
            max_dimension=args.max_dimension,
            target_max_bytes=args.target_bytes,
            fallback_ratio=args.fallback_ratio,
        )
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    queue = QueueService(encoder=EncoderService(settings=settings))
    queue.add_files(args.inputs)
    queue.process_all()
    queue.export_all(Path(args.output))

    failed: List[QueueItem] = []
    for item in queue.items:
        print(_describe(item))
        if item.status == "error":
            failed.append(item)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
