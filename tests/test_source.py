import math
from types import SimpleNamespace

from pdfminer.psparser import LIT

from pdf_context import extract_right_of_label
from pdf_extract import resolve_page
from pdf_models import FontMetrics
from pdf_source import PlumberSource, chars_to_runs, page_font_metrics, run_text, run_to_event


def char(text, x0, width=5.0, y0=100.0, size=10.0, font="Helvetica", upright=True):
    return {
        "text": text,
        "fontname": font,
        "size": size,
        "x0": x0,
        "x1": x0 + width,
        "y0": y0,
        "y1": y0 + size,
        "upright": upright,
        "matrix": (1.0, 0.0, 0.0, 1.0, x0, y0 + 2.0),
        "adv": width,
    }


def word(text, x0, **kwargs):
    return [char(ch, x0 + i * 5.0, **kwargs) for i, ch in enumerate(text)]


def _texts(runs):
    return ["".join(c["text"] for c in run) for run in runs]


def test_chars_group_into_runs_on_gap_font_and_baseline():
    chars = (
        word("Invoice No", 50.0)
        + word("INV-001", 150.0)
        + word("Bold", 190.0, font="Helvetica-Bold")
        + word("Next", 50.0, y0=80.0)
    )

    assert _texts(chars_to_runs(chars)) == ["Invoice No", "INV-001", "Bold", "Next"]


def test_run_to_event_builds_lines_from_inked_chars():
    run = word(" Total ", 50.0)
    metrics = {"Helvetica": FontMetrics(typo_ascender=718, typo_descender=-207)}
    event = run_to_event(run, metrics)

    assert event.text == "Total"
    assert event.baseline.start == (55.0, 102.0)
    assert event.baseline.end == (80.0, 102.0)
    assert event.ascent_line.start == (55.0, 110.0)
    assert event.descent_line.end == (80.0, 100.0)
    assert event.font_size == 10.0
    assert event.metrics == metrics["Helvetica"]


def test_rotated_run_has_no_extent_lines():
    chars = [
        {
            **char(ch, 100.0, upright=False),
            "matrix": (0.0, 1.0, -1.0, 0.0, 100.0, 200.0 + i * 5.0),
        }
        for i, ch in enumerate("UP")
    ]
    runs = chars_to_runs(chars)
    event = run_to_event(runs[0])

    assert len(runs) == 1
    assert event.ascent_line is None and event.descent_line is None
    assert event.baseline.start == (100.0, 200.0)
    assert math.isclose(event.baseline.end[1], 210.0)


def _fake_pdf(pages, resources=None):
    return SimpleNamespace(
        pages=[
            SimpleNamespace(
                chars=chars,
                height=792.0,
                extract_text=lambda text=text: text,
                page_obj=SimpleNamespace(resources=resources or {}),
            )
            for chars, text in pages
        ],
        close=lambda: None,
    )


def test_plumber_source_exposes_pages_and_events():
    pdf = _fake_pdf([(word("Hello", 10.0), "Hello"), ([], None)])
    events = []
    with PlumberSource(pdf) as source:
        assert source.page_count == 2
        assert source.page_height(1) == 792.0
        assert source.page_text(2) == ""
        source.visit_text_events(1, events.append)

    assert [e.text for e in events] == ["Hello"]
    assert events[0].metrics is None


def test_pen_moves_between_words_become_spaces():
    chars = word("Invoice", 50.0) + word("No", 87.8) + word("INV-001", 150.0)
    runs = chars_to_runs(chars)
    page = resolve_page(run_to_event(run) for run in runs)

    assert [c.text for c in page.chunks] == ["Invoice No", "INV-001"]
    assert extract_right_of_label(page.chunks, "Invoice No") == "INV-001"


def test_run_text_keeps_kerned_words_and_drawn_spaces():
    kerned = [char(ch, 50.0 + i * 5.4) for i, ch in enumerate("Total")]

    assert run_text(kerned) == "Total"
    assert run_text(word("Invoice ", 50.0) + word("No", 92.8)) == "Invoice No"


FONT_RESOURCES = {
    "Font": {
        "F1": {
            "BaseFont": LIT("ABCDEF+Arial"),
            "FontDescriptor": {
                "FontName": LIT("ABCDEF+Arial"),
                "Ascent": 905,
                "Descent": -212,
                "CapHeight": 716,
            },
        },
        "F2": {
            "BaseFont": LIT("Courier"),
            "FontDescriptor": {"FontName": LIT("Courier"), "CapHeight": 571},
        },
        "F3": {
            "BaseFont": LIT("Gothic-Identity-H"),
            "Subtype": LIT("Type0"),
            "DescendantFonts": [
                {
                    "BaseFont": LIT("Gothic"),
                    "FontDescriptor": {
                        "FontName": LIT("Gothic"),
                        "Ascent": 880,
                        "Descent": -120,
                        "XHeight": 500.5,
                    },
                }
            ],
        },
        "F4": {"BaseFont": LIT("Helvetica"), "Subtype": LIT("Type1")},
    }
}


def test_page_font_metrics_reads_font_descriptors():
    page = SimpleNamespace(page_obj=SimpleNamespace(resources=FONT_RESOURCES))
    metrics = page_font_metrics(page)

    assert metrics["ABCDEF+Arial"] == FontMetrics(
        typo_ascender=905.0, typo_descender=-212.0, cap_height=716.0
    )
    assert metrics["Courier"] == FontMetrics(cap_height=571.0)
    assert metrics["Gothic-Identity-H"] == FontMetrics(
        typo_ascender=880.0, typo_descender=-120.0, x_height=500.5
    )
    assert metrics["Gothic"] is metrics["Gothic-Identity-H"]
    assert "Helvetica" not in metrics


def test_plumber_source_attaches_descriptor_metrics_to_events():
    pdf = _fake_pdf([(word("Hi", 10.0, font="Courier"), "Hi")], resources=FONT_RESOURCES)
    events = []
    with PlumberSource(pdf) as source:
        source.visit_text_events(1, events.append)

    assert events[0].metrics == FontMetrics(cap_height=571.0)
