from __future__ import annotations

from typing import Callable

from pdf_models import LineSegment, RenderEvent


def make_event(
    text: str,
    x: float,
    bottom: float,
    width: float,
    height: float = 10.0,
    font: str = "Helvetica",
) -> RenderEvent:
    """An upright glyph run whose chunk spans [bottom, bottom + height]."""
    top = bottom + height
    base_y = bottom + height * 0.25
    return RenderEvent(
        text=text,
        baseline=LineSegment((x, base_y), (x + width, base_y)),
        font_size=height,
        font_name=font,
        ascent_line=LineSegment((x, top), (x + width, top)),
        descent_line=LineSegment((x, bottom), (x + width, bottom)),
    )


def label_and_value(label: str, value: str, bottom: float = 700.0, font: str = "Helvetica") -> list[RenderEvent]:
    return [
        make_event(label, 50.0, bottom, 60.0, font=font),
        make_event(value, 120.0, bottom, 40.0, font=font),
    ]


class FakeSource:
    """In-memory page source; a page given as an exception fails to decode."""

    def __init__(
        self,
        pages: list[list[RenderEvent] | Exception],
        texts: dict[int, str] | None = None,
        height: float = 792.0,
        on_page: Callable[[int], None] | None = None,
    ):
        self.pages = pages
        self.texts = texts or {}
        self.height = height
        self.on_page = on_page
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page_height(self, page_number: int) -> float:
        return self.height

    def visit_text_events(self, page_number, visitor) -> None:
        if self.on_page is not None:
            self.on_page(page_number)
        page = self.pages[page_number - 1]
        if isinstance(page, Exception):
            raise page
        for event in page:
            visitor(event)

    def page_text(self, page_number: int) -> str:
        if page_number in self.texts:
            return self.texts[page_number]
        page = self.pages[page_number - 1]
        return " ".join(e.text for e in page)

    def __enter__(self) -> FakeSource:
        return self

    def __exit__(self, *exc) -> None:
        self.closed = True


def invoice_bundle(**kwargs) -> FakeSource:
    """Five pages: a cover page, a three-page invoice and a one-page invoice."""
    pages = [
        [make_event("Cover letter", 50.0, 750.0, 80.0, font="ABCDEF+Arial")],
        label_and_value("Invoice No", "INV-001") + label_and_value("Total", "100.00", bottom=600.0),
        [],
        label_and_value("TOTAL", "100.00", bottom=600.0, font="Helvetica-Bold"),
        label_and_value("Invoice No", "INV-002") + label_and_value("Total", "250.00", bottom=600.0),
    ]
    return FakeSource(pages, texts={3: " \n  "}, **kwargs)
