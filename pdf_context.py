from __future__ import annotations

import re
from typing import Sequence

from pdf_models import ExtractField, FieldMode, PositionedTextChunk

_RECT_TOLERANCE = 0.5
_MIN_CHUNK_OVERLAP = 0.60
_MAX_HEIGHT_DELTA_PTS = 1.5
_MAX_HEIGHT_DELTA_RATIO = 0.25
_MIN_CHUNK_AREA = 0.0001

_LABEL_Y_TOLERANCE = 2.0

_WHITESPACE_RE = re.compile(r"\s+")


def _normalize(text: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def extract_from_rect(
    chunks: Sequence[PositionedTextChunk],
    x: float,
    y: float,
    width: float,
    height: float,
) -> str:
    """Join the text of chunks lying inside a rectangle, in reading order.

    A chunk qualifies when at least 60% of its own area falls inside the
    tolerance-expanded rectangle and its height roughly matches the
    rectangle's.
    """
    left = x - _RECT_TOLERANCE
    right = x + width + _RECT_TOLERANCE
    bottom = y - _RECT_TOLERANCE
    top = y + height + _RECT_TOLERANCE
    rect_h = top - bottom

    hits: list[PositionedTextChunk] = []
    for c in chunks:
        c_right = c.x + c.width
        iw = max(0.0, min(right, c_right) - max(left, c.x))
        ih = max(0.0, min(top, c.top) - max(bottom, c.bottom))
        if iw <= 0 or ih <= 0:
            continue

        inter = iw * ih
        c_area = max(_MIN_CHUNK_AREA, (c_right - c.x) * (c.top - c.bottom))
        if inter / c_area < _MIN_CHUNK_OVERLAP:
            continue

        h_delta = abs(c.height - rect_h)
        if h_delta > max(_MAX_HEIGHT_DELTA_PTS, _MAX_HEIGHT_DELTA_RATIO * c.height):
            continue
        hits.append(c)

    hits.sort(key=lambda c: (-c.y, c.x))
    return " ".join(c.text for c in hits).strip()


def extract_right_of_label(chunks: Sequence[PositionedTextChunk], label_text: str) -> str:
    """Return the nearest chunk to the right of *label_text* on the same line."""
    if not label_text or not label_text.strip():
        return ""

    wanted = label_text.lower()
    label = next((c for c in chunks if c.text.lower() == wanted), None)
    if label is None:
        return ""

    label_right = label.x + label.width
    candidates = [
        c
        for c in chunks
        if abs(c.y - label.y) < _LABEL_Y_TOLERANCE and c.x > label_right
    ]
    if not candidates:
        return ""
    return min(candidates, key=lambda c: c.x).text.strip()


def extract_matching_values(chunks: Sequence[PositionedTextChunk], match_values: str) -> str:
    """Return the first chunk whose text is one of the comma-separated candidates."""
    if not match_values or not match_values.strip():
        return ""

    candidates = {_normalize(v).lower() for v in match_values.split(",")}
    for c in chunks:
        if _normalize(c.text).lower() in candidates:
            return c.text
    return ""


def extract_value(chunks: Sequence[PositionedTextChunk], field: ExtractField) -> str:
    if field.mode is FieldMode.RECTANGLE:
        return extract_from_rect(chunks, field.x, field.y, field.width, field.height)
    if field.mode is FieldMode.INLINE:
        return extract_right_of_label(chunks, field.name)
    if field.mode is FieldMode.MATCH_LIST:
        return extract_matching_values(chunks, field.match_values)
    return ""


def reading_order(
    chunks: Sequence[PositionedTextChunk], text_filter: str | None = None
) -> list[PositionedTextChunk]:
    """Sort chunks top-to-bottom then left-to-right, dropping blank ones."""
    needle = (text_filter or "").strip().lower()
    visible = [
        c
        for c in chunks
        if c.text.strip() and (not needle or needle in c.text.lower())
    ]
    return sorted(visible, key=lambda c: (-c.y, c.x))


def field_from_chunk(chunk: PositionedTextChunk, name: str | None = None) -> ExtractField:
    """Propose a rectangle field that covers *chunk*."""
    if chunk.bottom != 0:
        y = chunk.bottom
    else:
        y = chunk.y - chunk.height / 2.0
    return ExtractField(
        name=name or chunk.text.strip() or "FromChunk",
        x=chunk.x,
        y=y,
        width=chunk.width,
        height=chunk.height,
    )
