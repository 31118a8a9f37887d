from __future__ import annotations

import enum
from dataclasses import dataclass, field

Point = tuple[float, float]


@dataclass(frozen=True)
class LineSegment:
    """A straight line in PDF user space (points, bottom-left origin)."""

    start: Point
    end: Point


@dataclass(frozen=True)
class FontMetrics:
    """Font program metrics in glyph units (1/1000 em)."""

    typo_ascender: float = 0.0
    typo_descender: float = 0.0
    cap_height: float = 0.0
    x_height: float = 0.0


@dataclass(frozen=True)
class RenderEvent:
    """One glyph run as emitted by the PDF decoder."""

    text: str
    baseline: LineSegment
    font_size: float
    font_name: str = ""
    ascent_line: LineSegment | None = None
    descent_line: LineSegment | None = None
    metrics: FontMetrics | None = None


@dataclass
class PositionedTextChunk:
    """One reconstructed text run with its bounding box on the page."""

    text: str
    x: float
    y: float
    width: float
    top: float
    bottom: float
    height: float


@dataclass
class PageChunks:
    """Chunks and fonts resolved for a single page."""

    chunks: list[PositionedTextChunk]
    fonts: dict[str, str]


class FieldMode(enum.Enum):
    RECTANGLE = "rectangle"
    INLINE = "inline"
    MATCH_LIST = "match_list"
    NONE = "none"


def resolve_field_mode(
    is_inline_value: bool, match_values: str, width: float, height: float
) -> FieldMode:
    """Pick the single extraction mode a field descriptor selects."""
    has_matches = bool(match_values.strip())
    if not is_inline_value and not has_matches and width > 0 and height > 0:
        return FieldMode.RECTANGLE
    if is_inline_value:
        return FieldMode.INLINE
    if has_matches:
        return FieldMode.MATCH_LIST
    return FieldMode.NONE


@dataclass(frozen=True)
class ExtractField:
    """A user-configured extraction rule.

    Coordinates are PDF points with a bottom-left origin.
    """

    name: str
    is_first_page_identifier: bool = False
    is_inline_value: bool = False
    match_values: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    mode: FieldMode = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "mode",
            resolve_field_mode(
                self.is_inline_value, self.match_values, self.width, self.height
            ),
        )


@dataclass
class DocumentSummary:
    """Running aggregate for one detected document (pages are 1-based)."""

    start_page: int
    end_page: int = 0
    blank_pages: int = 0
    fonts: dict[str, str] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return max(1, self.end_page - self.start_page + 1)

    def sorted_fonts(self) -> list[str]:
        return [self.fonts[key] for key in sorted(self.fonts)]


@dataclass
class ExtractedProperty:
    """One (document, field, value) observation."""

    doc_no: int
    doc_starting_page: int
    name: str
    value: str
    doc_pages: int = 0
    doc_blank_pages: int = 0
    fonts: str = ""


@dataclass
class PageError:
    """A page the decoder could not read; it is left out of the scan."""

    page_number: int
    message: str


@dataclass
class ScanResult:
    properties: list[ExtractedProperty] = field(default_factory=list)
    total_pages: int = 0
    total_blank_pages: int = 0
    total_documents: int = 0
    all_fonts: list[str] = field(default_factory=list)
    documents: dict[int, DocumentSummary] = field(default_factory=dict)
    skipped_pages: list[PageError] = field(default_factory=list)
