from __future__ import annotations

import math
import re
from concurrent.futures import Executor
from typing import Iterable

from pdf_models import LineSegment, PageChunks, PositionedTextChunk, RenderEvent

_SUBSET_PREFIX_RE = re.compile(r"^[A-Z]{6}\+")
_WHITESPACE_RE = re.compile(r"\s+")

_FALLBACK_EM_RATIO = 0.75
_LAST_RESORT_HEIGHT = 8.0
_TOP_SHARE = 0.6


def normalize_font_name(raw: str) -> str:
    """Strip a subset prefix such as ``ABCDEF+`` and any commas."""
    name = _SUBSET_PREFIX_RE.sub("", raw or "", count=1)
    return name.replace(",", "").strip()


def font_key(name: str) -> str:
    return name.strip().lower()


def normalize_page_text(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", (text or "").replace("\u00a0", " ")).strip()


def is_blank_text(text: str) -> bool:
    return normalize_page_text(text) == ""


def _is_finite_line(line: LineSegment | None) -> bool:
    if line is None:
        return False
    coords = (*line.start, *line.end)
    return not any(math.isnan(c) for c in coords)


def _em_ratio(event: RenderEvent) -> float:
    fm = event.metrics
    if fm is None:
        return _FALLBACK_EM_RATIO
    ascender = fm.typo_ascender or 0.0
    descender = abs(fm.typo_descender or 0.0)
    if ascender != 0 or descender != 0:
        return (ascender + descender) / 1000.0
    if fm.cap_height:
        return fm.cap_height / 1000.0 * 1.1
    if fm.x_height:
        return fm.x_height / 1000.0 * 1.5
    return _FALLBACK_EM_RATIO


def resolve_chunk(event: RenderEvent) -> PositionedTextChunk | None:
    """Reconstruct a positioned chunk from one render event.

    Degenerate geometry never raises: missing ascent/descent lines fall back
    to font metrics, then to a fixed em ratio, then to a fixed height.
    """
    text = event.text or ""
    if not text:
        return None

    base_x, base_y = event.baseline.start
    dir_x = event.baseline.end[0] - base_x
    dir_y = event.baseline.end[1] - base_y
    length = math.hypot(dir_x, dir_y)
    if not length > 1e-9:
        unit_x, unit_y = 1.0, 0.0
    else:
        unit_x, unit_y = dir_x / length, dir_y / length

    # Unit normal, pointing "up" for left-to-right text.
    n_x, n_y = -unit_y, unit_x

    width = dir_x * unit_x + dir_y * unit_y

    asc, desc = event.ascent_line, event.descent_line
    if _is_finite_line(asc) and _is_finite_line(desc):
        def dist(a: tuple[float, float], d: tuple[float, float]) -> float:
            return abs((a[0] - d[0]) * n_x + (a[1] - d[1]) * n_y)

        height = max(dist(asc.start, desc.start), dist(asc.end, desc.end))
        asc_y_max = max(asc.start[1], asc.end[1])
        desc_y_min = min(desc.start[1], desc.end[1])
        top = max(asc_y_max, desc_y_min + height)
        bottom = top - height
    else:
        height = (event.font_size or 0.0) * _em_ratio(event)
        if not height > 0:
            height = _LAST_RESORT_HEIGHT
        top_y = base_y + n_y * (height * _TOP_SHARE)
        bottom_y = top_y - n_y * height
        top = max(top_y, bottom_y)
        bottom = min(top_y, bottom_y)

    if math.isnan(base_x):
        base_x = 0.0
    if math.isnan(width) or width < 0:
        width = 0.0
    if math.isnan(height) or height < 0:
        height = 0.0
    if math.isnan(top) or math.isnan(bottom):
        top = base_y + height * 0.5
        bottom = base_y - height * 0.5
    y_mid = (top + bottom) / 2.0
    if math.isnan(y_mid):
        y_mid = base_y

    return PositionedTextChunk(
        text=text,
        x=base_x,
        y=y_mid,
        width=width,
        top=top,
        bottom=bottom,
        height=height,
    )


def resolve_page(
    events: Iterable[RenderEvent], executor: Executor | None = None
) -> PageChunks:
    """Resolve every render event of one page into chunks and a font set.

    *executor* may resolve events concurrently; ``Executor.map`` yields in
    submission order so the chunk list keeps event order.
    """
    events = list(events)
    if executor is not None:
        resolved = list(executor.map(resolve_chunk, events))
    else:
        resolved = [resolve_chunk(e) for e in events]

    fonts: dict[str, str] = {}
    chunks: list[PositionedTextChunk] = []
    for event, chunk in zip(events, resolved):
        name = normalize_font_name(event.font_name)
        if name:
            fonts.setdefault(font_key(name), name)
        if chunk is not None:
            chunks.append(chunk)
    return PageChunks(chunks=chunks, fonts=fonts)
