#!/usr/bin/env python3
"""
Zone Extraction - Entry Point
=============================

Extracts line zones (character names, stage directions, dialogue blocks)
from every page of a script PDF.

Usage:
    python run_extract_zones.py hamlet.pdf --output zones.json
    python run_extract_zones.py hamlet.pdf --split --pages 3-10
    python run_extract_zones.py hamlet.pdf --store-file data/hamlet.json \\
        --production-id prod_123 --uid sm1

Output:
    JSON object keyed by page key ("12", or "12L"/"12R" in split mode), each
    value a list of {x, y, w, h, text[, isCharName | isStageDirection]} in
    percent of the page (or half-page).

With --store-file the zones are saved to the production's zones collection
through PageZoneRegistry; pages that already have stored zones are kept.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from cue_script import DEFAULT_SCALE, PageZoneRegistry, PdfScript, page_key, zones_to_list
from cue_sync import JsonFileDocumentStore, ProductionRepository, create_logger

logger = logging.getLogger(__name__)


def parse_page_range(page_range: Optional[str], page_count: int) -> List[int]:
    """
    "3-10" -> [3..10], "5" -> [5], None -> all pages (clamped to the PDF).

    Raises:
        ValueError: Malformed range
    """
    if not page_range:
        return list(range(1, page_count + 1))
    first, sep, last = page_range.partition("-")
    try:
        start = int(first)
        end = int(last) if sep else start
    except ValueError:
        raise ValueError(f"Invalid page range: {page_range!r}")
    if start < 1 or end < start:
        raise ValueError(f"Invalid page range: {page_range!r}")
    return list(range(start, min(end, page_count) + 1))


def positions(pages: List[int], split_mode: bool) -> Iterator[Tuple[int, str]]:
    for page in pages:
        if split_mode:
            yield page, "L"
            yield page, "R"
        else:
            yield page, ""


def extract_all(
    script: PdfScript,
    pages: List[int],
    split_mode: bool,
    scale: float,
    registry: Optional[PageZoneRegistry] = None,
) -> Dict[str, list]:
    result = {}
    for page, half in positions(pages, split_mode):
        key = page_key(page, half, split_mode)
        if registry is not None:
            zones = registry.get_or_extract(
                page, half, lambda p, h: script.extract_page(p, half=h or None, scale=scale)
            )
        else:
            zones = script.extract_page(page, half=half or None, scale=scale)
        result[key] = zones_to_list(zones)
        logger.info(f"📄 {key}: {len(zones)} zones")
    return result


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Extract line zones from a script PDF",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('pdf', type=Path, help='Script PDF')
    parser.add_argument('--pages', default=None, help='Page range, e.g. 3-10 (default: all)')
    parser.add_argument('--split', action='store_true', help='2-up pages (left/right halves)')
    parser.add_argument('--scale', type=float, default=DEFAULT_SCALE,
                        help=f'Render scale (default: {DEFAULT_SCALE})')
    parser.add_argument('--output', type=Path, default=None,
                        help='Write zones JSON here (default: stdout)')
    parser.add_argument('--store-file', type=Path, default=None,
                        help='Save zones into this document store file')
    parser.add_argument('--production-id', default=None, help='Production for --store-file')
    parser.add_argument('--uid', default=None, help='Owner uid for --store-file')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    if not args.pdf.exists():
        print(f"❌ Error: PDF not found: {args.pdf}", file=sys.stderr)
        sys.exit(1)

    registry = None
    if args.store_file:
        if not args.production_id or not args.uid:
            print("❌ Error: --store-file needs --production-id and --uid", file=sys.stderr)
            sys.exit(1)
        store = JsonFileDocumentStore(args.store_file, logger=create_logger("store"))
        repo = ProductionRepository(store, args.production_id)
        registry = PageZoneRegistry(repo, uid=args.uid, split_mode=args.split)
        if not registry.is_owner:
            logger.warning("⚠️  uid is not an owner of the production, zones will not be saved")

    try:
        with PdfScript(str(args.pdf), logger=create_logger("zones")) as script:
            pages = parse_page_range(args.pages, script.page_count)
            zones = extract_all(script, pages, args.split, args.scale, registry)
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)

    payload = json.dumps(zones, indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        logger.info(f"✅ Wrote {len(zones)} pages to {args.output}")
    else:
        print(payload)


if __name__ == '__main__':
    main()
