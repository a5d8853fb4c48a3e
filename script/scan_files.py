"""
Batch scan pipeline.

Walks a source directory for HTML/JSX-like files and, per file:
- locates img/Image and video tags
- groups nearby tags and extracts surrounding context once per group
- appends one row per tag to a CSV summary
"""

from __future__ import annotations

import argparse
import csv
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import CONTEXT_RANGE_VALUES, SOURCE_EXTENSIONS, get_context_range_value
from mediactx.context_extractor import NO_CONTEXT_MARKER
from mediactx.document import TextDocument
from mediactx.errors import InputTooLargeError
from mediactx.grouping import build_context_cache
from mediactx.locator import TagKind, TagLocator, extract_image_file_name, extract_video_file_name


CSV_FIELDS = ["file", "kind", "line", "column", "file_name", "group_id", "context_chars", "timed_out"]

SKIP_DIRS = {"node_modules", ".git", "dist", "build", ".next"}


def _list_source_files(source_dir: Path, extensions: set[str]) -> List[Path]:
    files: List[Path] = []
    for path in source_dir.rglob("*"):
        if any(part in SKIP_DIRS for part in path.relative_to(source_dir).parts):
            continue
        if path.is_file() and path.suffix.lower() in extensions:
            files.append(path)
    files.sort()
    return files


def _scan_file(
    *,
    path: Path,
    source_dir: Path,
    locator: TagLocator,
    context_range: int,
    context_enabled: bool,
) -> List[Dict[str, object]]:
    """
    Scan one file and return its CSV rows.
    Files over the size cap produce no rows.
    """
    document = TextDocument(path.read_text(encoding="utf-8", errors="ignore"), uri=str(path))
    try:
        located = locator.locate_all_in_range(document.text)
    except InputTooLargeError as e:
        print(f"Skipping {path}: {e}")
        return []

    cache = build_context_cache(document.text, located.matches, context_range, context_enabled)
    rows: List[Dict[str, object]] = []
    for tag in sorted(located.matches, key=lambda t: t.start):
        position = document.position_at(tag.start)
        if tag.kind is TagKind.IMAGE:
            file_name = extract_image_file_name(tag.raw_text)
        else:
            file_name = extract_video_file_name(tag.raw_text)

        context = cache.get_surrounding_text(*tag.range) if cache else None
        rows.append({
            "file": str(path.relative_to(source_dir)),
            "kind": tag.kind.value,
            "line": position.line + 1,
            "column": position.character + 1,
            "file_name": file_name,
            "group_id": cache.get_group_id(*tag.range) if cache else "",
            "context_chars": len(context) if context and context != NO_CONTEXT_MARKER else 0,
            "timed_out": located.timed_out,
        })
    return rows


def _write_csv(rows: List[Dict[str, object]], out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        writer.writerows(rows)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Scan a source tree for media tags and their context.")
    parser.add_argument("--source_dir", required=True, help="Root folder to scan.")
    parser.add_argument("--out", default="media_tags.csv", help="CSV output path (default: media_tags.csv).")
    parser.add_argument(
        "--context_range",
        default="standard",
        choices=[k for k in CONTEXT_RANGE_VALUES if k != "default"],
        help="Context window preset (default: standard).",
    )
    parser.add_argument("--no_context", action="store_true", help="Skip surrounding text extraction.")
    parser.add_argument(
        "--ext",
        nargs="+",
        default=list(SOURCE_EXTENSIONS),
        help="File extensions to include (default: %(default)s).",
    )
    parser.add_argument(
        "--progress_every",
        type=int,
        default=25,
        help="Print progress every N files (default: 25).",
    )
    args = parser.parse_args(argv)

    source_dir = Path(args.source_dir)
    if not source_dir.exists() or not source_dir.is_dir():
        raise FileNotFoundError(f"source_dir not found: {source_dir}")

    extensions = {e.lower() if e.startswith(".") else f".{e.lower()}" for e in args.ext}
    locator = TagLocator()
    context_range = get_context_range_value(args.context_range)

    files = _list_source_files(source_dir, extensions)
    print(f"Found files: {len(files)}")
    rows: List[Dict[str, object]] = []
    with_tags = 0
    started_at = time.time()
    total = len(files)
    for i, path in enumerate(files, start=1):
        file_rows = _scan_file(
            path=path,
            source_dir=source_dir,
            locator=locator,
            context_range=context_range,
            context_enabled=not args.no_context,
        )
        if file_rows:
            with_tags += 1
            rows.extend(file_rows)
        if total > 0 and (i == 1 or i % max(args.progress_every, 1) == 0 or i == total):
            elapsed = time.time() - started_at
            print(
                f"Progress {i}/{total} ({(i/total)*100:.1f}%) "
                f"tags={len(rows)} files_with_tags={with_tags} "
                f"elapsed={elapsed:.1f}s",
                flush=True,
            )

    _write_csv(rows, Path(args.out))
    print(f"Completed. files={total} tags={len(rows)} -> {args.out}")


if __name__ == "__main__":
    main()
