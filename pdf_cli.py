"""Extract labeled fields from a multi-document PDF bundle.

Two commands:
  scan    – split the bundle into documents on an identifier field and
            report each document's field values, page counts and fonts
  chunks  – list one page's positioned text chunks in reading order, with
            a rectangle field proposed for each, to help write a field set
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

from pdf_config import field_to_dict, load_fields
from pdf_context import field_from_chunk, reading_order
from pdf_errors import FieldExtractError, ScanCancelled
from pdf_extract import resolve_page
from pdf_models import ExtractField, ScanResult
from pdf_pipeline import document_rows, identifier_counts, submit_scan
from pdf_source import PlumberSource

logger = logging.getLogger(__name__)


def _print_table(rows: list[dict[str, str]]) -> None:
    if not rows:
        return
    columns = list(rows[0])
    widths = {c: max(len(c), *(len(r.get(c, "")) for r in rows)) for c in columns}
    print("  ".join(c.ljust(widths[c]) for c in columns).rstrip())
    print("  ".join("-" * widths[c] for c in columns))
    for row in rows:
        print("  ".join(row.get(c, "").ljust(widths[c]) for c in columns).rstrip())


def _print_scan(result: ScanResult, fields: list[ExtractField]) -> None:
    print("=" * 64)
    print("RESULTS")
    print("=" * 64)
    print(f"  Pages:        {result.total_pages}")
    print(f"  Blank pages:  {result.total_blank_pages}")
    print(f"  Documents:    {result.total_documents}")
    print(f"  Fonts:        {', '.join(result.all_fonts) or '-'}")

    if result.skipped_pages:
        print(f"\nSkipped pages ({len(result.skipped_pages)}):")
        for err in result.skipped_pages:
            print(f"  page {err.page_number}: {err.message}")

    if not result.properties:
        print("\nNo document identifier found.")
        return

    print()
    _print_table(document_rows(result))

    name, counts, highest = identifier_counts(result, fields)
    if highest > 1:
        repeated = ", ".join(f"{v} ({n}x)" for v, n in counts.items() if n > 1)
        print(f"\nRepeated {name} values: {repeated}")
    print()


def scan(pdf_path: Path, fields_path: Path, as_json: bool = False) -> int:
    fields = load_fields(fields_path)
    cancel = threading.Event()
    with PlumberSource.open(pdf_path) as source, ThreadPoolExecutor(max_workers=1) as executor:
        future = submit_scan(executor, source, fields, cancel_event=cancel)
        try:
            result = future.result()
        except KeyboardInterrupt:
            # The worker stops before its next page.
            cancel.set()
            future.result()
            raise

    if as_json:
        json.dump(asdict(result), sys.stdout)
        sys.stdout.write("\n")
    else:
        _print_scan(result, fields)
    return 0


def chunks(pdf_path: Path, page_number: int, text_filter: str | None, as_json: bool = False) -> int:
    with PlumberSource.open(pdf_path) as source:
        if not 1 <= page_number <= source.page_count:
            raise ValueError(f"page {page_number} out of range (1-{source.page_count})")
        height = source.page_height(page_number)
        events = []
        source.visit_text_events(page_number, events.append)
    page = resolve_page(events)
    ordered = reading_order(page.chunks, text_filter)

    if as_json:
        payload = {
            "page": page_number,
            "pageHeight": height,
            "chunks": [
                {**asdict(c), "field": field_to_dict(field_from_chunk(c))} for c in ordered
            ],
        }
        json.dump(payload, sys.stdout)
        sys.stdout.write("\n")
        return 0

    print(f"Page {page_number} (height {height:.1f}pt): {len(ordered)} chunks")
    for c in ordered:
        f = field_from_chunk(c)
        print(
            f"  x={c.x:8.2f} y={c.y:8.2f} w={c.width:7.2f} h={c.height:6.2f}"
            f"  rect=({f.x:.2f}, {f.y:.2f}, {f.width:.2f}, {f.height:.2f})  {c.text!r}"
        )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-fields",
        description="Extract labeled fields from a multi-document PDF bundle.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scan_p = sub.add_parser("scan", help="Split a bundle into documents and extract fields")
    scan_p.add_argument("pdf", type=Path, help="Path to the PDF file")
    scan_p.add_argument(
        "-f", "--fields",
        type=Path, required=True, metavar="FIELDS",
        help="JSON file with the field descriptors",
    )
    scan_p.add_argument("--json", action="store_true", help="Emit the scan result as JSON")

    chunks_p = sub.add_parser("chunks", help="List a page's positioned text chunks")
    chunks_p.add_argument("pdf", type=Path, help="Path to the PDF file")
    chunks_p.add_argument(
        "-p", "--page",
        type=int, default=1, metavar="N",
        help="1-based page number (default: 1)",
    )
    chunks_p.add_argument("--filter", default=None, help="Only chunks containing this text")
    chunks_p.add_argument("--json", action="store_true", help="Emit chunks as JSON")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        level=getattr(logging, args.log_level),
    )

    if not args.pdf.exists():
        print(f"Error: file not found: {args.pdf}", file=sys.stderr)
        return 1

    try:
        if args.command == "scan":
            return scan(args.pdf, args.fields, as_json=args.json)
        return chunks(args.pdf, args.page, args.filter, as_json=args.json)
    except (KeyboardInterrupt, ScanCancelled):
        print("Cancelled.", file=sys.stderr)
        return 130
    except FieldExtractError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
