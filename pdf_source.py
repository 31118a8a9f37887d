from __future__ import annotations

import logging
import math
import warnings
from pathlib import Path
from typing import Any, Callable, Iterator

import pdfplumber
from pdfminer.pdftypes import resolve1
from pdfminer.psparser import literal_name

from pdf_models import FontMetrics, LineSegment, RenderEvent

logging.getLogger("pdfminer").setLevel(logging.ERROR)
warnings.filterwarnings("ignore", module="pdfminer")

logger = logging.getLogger(__name__)

_BASELINE_TOLERANCE = 0.5
_MIN_GAP = 4.0
_GAP_CHAR_WIDTHS = 1.5
# A gap wider than this share of the font size reads as a word break.
_WORD_SPACE_EM = 0.25


def _origin(c: dict) -> tuple[float, float]:
    matrix = c.get("matrix")
    if matrix:
        return float(matrix[4]), float(matrix[5])
    return float(c["x0"]), float(c["y0"])


def _advance_end(c: dict) -> tuple[float, float]:
    """Baseline end of a char: its text matrix applied to ``(adv, 0)``."""
    matrix = c.get("matrix")
    adv = c.get("adv")
    if matrix and adv is not None:
        a, b, _, _, e, f = (float(v) for v in matrix)
        return a * float(adv) + e, b * float(adv) + f
    return float(c["x1"]), _origin(c)[1]


def _gap(prev: dict, c: dict) -> float:
    if c.get("upright", True):
        return float(c["x0"]) - float(prev["x1"])
    end_x, end_y = _advance_end(prev)
    ox, oy = _origin(c)
    return math.hypot(ox - end_x, oy - end_y)


def _continues_run(run: list[dict], c: dict) -> bool:
    last = run[-1]
    if c.get("fontname") != last.get("fontname"):
        return False
    if abs(float(c.get("size") or 0) - float(last.get("size") or 0)) > 0.01:
        return False
    if bool(c.get("upright", True)) != bool(last.get("upright", True)):
        return False

    if c.get("upright", True):
        if abs(_origin(c)[1] - _origin(run[0])[1]) > _BASELINE_TOLERANCE:
            return False
        run_x0 = float(run[0]["x0"])
        n = sum(len(ch["text"]) for ch in run)
        avg_char_width = (float(last["x1"]) - run_x0) / n if n else 5.0
        gap = _gap(last, c)
        return -_BASELINE_TOLERANCE <= gap <= max(avg_char_width * _GAP_CHAR_WIDTHS, _MIN_GAP)

    size = float(c.get("size") or 0)
    return _gap(last, c) <= max(size * _GAP_CHAR_WIDTHS, _MIN_GAP)


def chars_to_runs(chars: list[dict]) -> list[list[dict]]:
    """Group page.chars, in content-stream order, into glyph runs.

    A run continues while font, size, orientation and baseline stay the
    same and the horizontal gap stays below 1.5 average char widths.
    """
    runs: list[list[dict]] = []
    for c in chars:
        if runs and _continues_run(runs[-1], c):
            runs[-1].append(c)
        else:
            runs.append([c])
    return runs


def run_text(run: list[dict]) -> str:
    """Join a run's chars, putting a space where the PDF only moved the pen."""
    parts: list[str] = []
    prev = None
    for c in run:
        if prev is not None and not prev["text"].isspace() and not c["text"].isspace():
            threshold = float(c.get("size") or 0) * _WORD_SPACE_EM
            if threshold > 0 and _gap(prev, c) > threshold:
                parts.append(" ")
        parts.append(c["text"])
        prev = c
    return "".join(parts)


def run_to_event(run: list[dict], metrics: dict[str, FontMetrics] | None = None) -> RenderEvent:
    font_name = run[0].get("fontname") or ""
    inked = [c for c in run if not c["text"].isspace()] or run
    first, last = inked[0], inked[-1]
    baseline = LineSegment(_origin(first), _advance_end(last))

    ascent_line = descent_line = None
    if first.get("upright", True):
        x0 = min(float(c["x0"]) for c in inked)
        x1 = max(float(c["x1"]) for c in inked)
        y1 = max(float(c["y1"]) for c in inked)
        y0 = min(float(c["y0"]) for c in inked)
        ascent_line = LineSegment((x0, y1), (x1, y1))
        descent_line = LineSegment((x0, y0), (x1, y0))

    return RenderEvent(
        text=run_text(run).strip(),
        baseline=baseline,
        font_size=float(run[0].get("size") or 0),
        font_name=font_name,
        ascent_line=ascent_line,
        descent_line=descent_line,
        metrics=(metrics or {}).get(font_name),
    )


def _font_descriptor(font: dict) -> dict | None:
    descriptor = resolve1(font.get("FontDescriptor"))
    if descriptor is None:
        descendants = resolve1(font.get("DescendantFonts"))
        if descendants:
            descendant = resolve1(descendants[0]) or {}
            descriptor = resolve1(descendant.get("FontDescriptor"))
    return descriptor if isinstance(descriptor, dict) else None


def _descriptor_metrics(descriptor: dict) -> FontMetrics:
    def number(key: str) -> float:
        value = resolve1(descriptor.get(key, 0))
        return float(value) if isinstance(value, (int, float)) else 0.0

    return FontMetrics(
        typo_ascender=number("Ascent"),
        typo_descender=number("Descent"),
        cap_height=number("CapHeight"),
        x_height=number("XHeight"),
    )


def page_font_metrics(page: pdfplumber.page.Page) -> dict[str, FontMetrics]:
    """Map each BaseFont on *page* to the metrics of its font descriptor."""
    resources = resolve1(getattr(page.page_obj, "resources", None)) or {}
    fonts = resolve1(resources.get("Font")) or {}
    result: dict[str, FontMetrics] = {}
    for ref in fonts.values():
        font = resolve1(ref)
        if not isinstance(font, dict) or "BaseFont" not in font:
            continue
        descriptor = _font_descriptor(font)
        if descriptor is None:
            continue
        metrics = _descriptor_metrics(descriptor)
        result[literal_name(resolve1(font["BaseFont"]))] = metrics
        if "FontName" in descriptor:
            result.setdefault(literal_name(resolve1(descriptor["FontName"])), metrics)
    return result


class PlumberSource:
    """A :class:`pdf_pipeline.PageSource` backed by pdfplumber."""

    def __init__(self, pdf: pdfplumber.PDF):
        self._pdf = pdf

    @classmethod
    def open(cls, path: str | Path) -> PlumberSource:
        return cls(pdfplumber.open(path))

    def close(self) -> None:
        self._pdf.close()

    def __enter__(self) -> PlumberSource:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _page(self, page_number: int) -> pdfplumber.page.Page:
        return self._pdf.pages[page_number - 1]

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    def page_height(self, page_number: int) -> float:
        return float(self._page(page_number).height)

    def page_text(self, page_number: int) -> str:
        return self._page(page_number).extract_text() or ""

    def iter_events(self, page_number: int) -> Iterator[RenderEvent]:
        page = self._page(page_number)
        metrics = page_font_metrics(page)
        runs = chars_to_runs(page.chars)
        logger.debug(
            "Page %d: %d glyph runs, %d fonts with metrics",
            page_number,
            len(runs),
            len(metrics),
        )
        for run in runs:
            yield run_to_event(run, metrics)

    def visit_text_events(
        self, page_number: int, visitor: Callable[[RenderEvent], None]
    ) -> None:
        for event in self.iter_events(page_number):
            visitor(event)
