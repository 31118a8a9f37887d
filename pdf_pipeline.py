from __future__ import annotations

import logging
import threading
from collections import Counter
from concurrent.futures import Executor, Future
from typing import Callable, Protocol, Sequence

from pdf_context import extract_value
from pdf_errors import ScanCancelled
from pdf_extract import is_blank_text, resolve_page
from pdf_models import (
    DocumentSummary,
    ExtractField,
    ExtractedProperty,
    PageChunks,
    PageError,
    RenderEvent,
    ScanResult,
)

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    """An opened PDF as exposed by the decoder. Pages are 1-based."""

    @property
    def page_count(self) -> int: ...

    def page_height(self, page_number: int) -> float: ...

    def visit_text_events(
        self, page_number: int, visitor: Callable[[RenderEvent], None]
    ) -> None: ...

    def page_text(self, page_number: int) -> str: ...


def _read_page(
    source: PageSource, page_number: int, executor: Executor | None
) -> tuple[PageChunks, bool]:
    events: list[RenderEvent] = []
    source.visit_text_events(page_number, events.append)
    page = resolve_page(events, executor)
    is_blank = is_blank_text(source.page_text(page_number))
    return page, is_blank


def _value_key(text: str) -> str:
    return text.lower()


def process_document(
    source: PageSource | None,
    fields: Sequence[ExtractField],
    cancel_event: threading.Event | None = None,
    executor: Executor | None = None,
) -> ScanResult:
    """Scan every page, split the bundle into documents and capture field values.

    A new document starts on any page where an identifier field yields a
    value. Pages before the first identifier hit only count toward the
    global totals. Pages the decoder fails on are recorded in
    ``skipped_pages`` and otherwise ignored.
    """
    if source is None:
        return ScanResult()

    total_pages = source.page_count
    result = ScanResult(total_pages=total_pages)
    identifiers = [f for f in fields if f.is_first_page_identifier]

    all_fonts: dict[str, str] = {}
    seen: set[tuple[int, str, str]] = set()
    doc_no = 0
    current = DocumentSummary(start_page=1)

    for page_number in range(1, total_pages + 1):
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelled(page_number)

        try:
            page, is_blank = _read_page(source, page_number, executor)
        except Exception as exc:
            logger.warning("Skipping unreadable page %d: %s", page_number, exc)
            result.skipped_pages.append(PageError(page_number, str(exc)))
            continue

        if is_blank:
            result.total_blank_pages += 1
            if doc_no > 0:
                current.blank_pages += 1

        for key, name in page.fonts.items():
            all_fonts.setdefault(key, name)
            if doc_no > 0:
                current.fonts.setdefault(key, name)

        starts_new_doc = any(extract_value(page.chunks, f).strip() for f in identifiers)
        if starts_new_doc:
            if doc_no > 0:
                end_page = page_number - 1
                current.end_page = end_page if end_page >= current.start_page else page_number
                result.documents[doc_no] = current
            doc_no += 1
            current = DocumentSummary(
                start_page=page_number,
                blank_pages=1 if is_blank else 0,
                fonts=dict(page.fonts),
            )
            logger.debug("Document %d starts on page %d", doc_no, page_number)

        if doc_no == 0:
            continue

        for f in fields:
            value = extract_value(page.chunks, f).strip()
            if not value:
                continue
            key = (doc_no, _value_key(f.name), _value_key(value))
            if key in seen:
                continue
            seen.add(key)
            result.properties.append(
                ExtractedProperty(
                    doc_no=doc_no,
                    doc_starting_page=current.start_page,
                    name=f.name,
                    value=value,
                )
            )

    if doc_no > 0:
        if current.end_page == 0:
            current.end_page = max(total_pages, current.start_page)
        result.documents[doc_no] = current

    for prop in result.properties:
        summary = result.documents.get(prop.doc_no)
        if summary is None:
            continue
        prop.doc_pages = summary.page_count
        prop.doc_blank_pages = summary.blank_pages
        prop.fonts = ", ".join(summary.sorted_fonts())

    result.total_documents = doc_no
    result.all_fonts = [all_fonts[key] for key in sorted(all_fonts)]
    logger.debug(
        "Scanned %d pages: %d documents, %d blank, %d skipped",
        total_pages,
        doc_no,
        result.total_blank_pages,
        len(result.skipped_pages),
    )
    return result


def submit_scan(
    executor: Executor,
    source: PageSource,
    fields: Sequence[ExtractField],
    cancel_event: threading.Event | None = None,
) -> Future[ScanResult]:
    """Run :func:`process_document` on *executor*.

    The same *source* must not be scanned by two jobs at once.
    """
    return executor.submit(process_document, source, list(fields), cancel_event)


def document_rows(result: ScanResult) -> list[dict[str, str]]:
    """Pivot properties into one row per document, preceded by a totals row."""
    columns = ["DocNo"]
    canonical = {"docno": "DocNo"}
    by_doc: dict[int, list[ExtractedProperty]] = {}
    for prop in result.properties:
        by_doc.setdefault(prop.doc_no, []).append(prop)

    rows: list[dict[str, str]] = []
    for doc_no in sorted(by_doc):
        row = {"DocNo": str(doc_no)}
        for prop in by_doc[doc_no]:
            for name, value in (
                (prop.name, prop.value),
                ("DocStartingPage", str(prop.doc_starting_page)),
                ("DocPages", str(prop.doc_pages)),
                ("DocBlankPages", str(prop.doc_blank_pages)),
                ("DocFonts", prop.fonts),
            ):
                key = name.lower()
                if key not in canonical:
                    canonical[key] = name
                    columns.append(name)
                row[canonical[key]] = value
        rows.append(row)

    for row in rows:
        for col in columns:
            row.setdefault(col, "")

    totals = {col: "" for col in columns}
    totals.update(
        {
            "DocNo": f"TOTAL {result.total_documents}",
            "DocPages": f"TOTAL {result.total_pages}",
            "DocBlankPages": f"TOTAL {result.total_blank_pages}",
            "DocFonts": f"FOUND: {', '.join(result.all_fonts)}",
        }
    )
    return [totals, *rows]


def identifier_counts(
    result: ScanResult, fields: Sequence[ExtractField]
) -> tuple[str | None, dict[str, int], int]:
    """Count how many documents carry each identifier value.

    Returns the identifier field name, value counts and the highest count;
    a highest count above one means an identifier repeats across documents.
    """
    name = next((f.name for f in fields if f.is_first_page_identifier), None)
    if not name:
        return None, {}, 0

    wanted = name.lower()
    counts: Counter[str] = Counter()
    display: dict[str, str] = {}
    for prop in result.properties:
        if prop.name.lower() != wanted or not prop.value.strip():
            continue
        key = _value_key(prop.value)
        display.setdefault(key, prop.value)
        counts[key] += 1

    values = {display[key]: counts[key] for key in sorted(counts)}
    return name, values, max(counts.values(), default=0)
