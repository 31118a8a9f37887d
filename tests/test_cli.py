import json

import pytest

import pdf_cli
from helpers import invoice_bundle
from pdf_cli import main


@pytest.fixture
def bundle_paths(tmp_path, monkeypatch):
    pdf = tmp_path / "bundle.pdf"
    pdf.write_bytes(b"%PDF-1.4\n")
    fields = tmp_path / "fields.json"
    fields.write_text(
        json.dumps(
            [
                {"name": "Invoice No", "isFirstPageIdentifier": True, "isInlineValue": True},
                {"name": "Total", "isInlineValue": True},
            ]
        ),
        encoding="utf-8",
    )

    class _Opener:
        @staticmethod
        def open(path):
            return invoice_bundle()

    monkeypatch.setattr(pdf_cli, "PlumberSource", _Opener)
    return pdf, fields


def test_scan_prints_totals_and_rows(bundle_paths, capsys):
    pdf, fields = bundle_paths

    exit_code = main(["scan", str(pdf), "--fields", str(fields)])
    out = capsys.readouterr().out

    assert exit_code == 0
    assert "Documents:    2" in out
    assert "Blank pages:  1" in out
    assert "INV-001" in out and "INV-002" in out
    assert "TOTAL 5" in out


def test_scan_outputs_json(bundle_paths, capsys):
    pdf, fields = bundle_paths

    exit_code = main(["scan", str(pdf), "-f", str(fields), "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["total_documents"] == 2
    assert payload["all_fonts"] == ["Arial", "Helvetica", "Helvetica-Bold"]
    assert payload["properties"][0]["value"] == "INV-001"


def test_chunks_lists_page_in_reading_order(bundle_paths, capsys):
    pdf, _ = bundle_paths

    exit_code = main(["chunks", str(pdf), "--page", "2", "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert [c["text"] for c in payload["chunks"]] == ["Invoice No", "INV-001", "Total", "100.00"]
    assert payload["chunks"][1]["field"]["x"] == 120.0


def test_chunks_rejects_page_out_of_range(bundle_paths, capsys):
    pdf, _ = bundle_paths

    assert main(["chunks", str(pdf), "--page", "9"]) == 1
    assert "out of range" in capsys.readouterr().err


def test_missing_pdf_is_reported(tmp_path, capsys):
    exit_code = main(["scan", str(tmp_path / "nope.pdf"), "-f", str(tmp_path / "f.json")])

    assert exit_code == 1
    assert "file not found" in capsys.readouterr().err


def test_bad_field_file_is_reported(bundle_paths, tmp_path, capsys):
    pdf, _ = bundle_paths
    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2]", encoding="utf-8")

    assert main(["scan", str(pdf), "-f", str(bad)]) == 1
    assert "Field descriptor is not an object" in capsys.readouterr().err
