from datetime import date

from conftest import NOW, days_ago, make_entry
from csv_export import HEADERS, export_filename, quote, render_csv, write_csv


def test_quotes_are_doubled_and_field_wrapped():
    assert quote('He said "hi"') == '"He said ""hi"""'


def test_row_layout():
    entry = make_entry("joy", 6, when=NOW, text='He said "hi"')
    lines = render_csv([entry]).split("\n")

    assert lines[0] == ",".join(HEADERS)
    assert lines[1] == (
        '2026-10-19T12:00:00.000Z,"He said ""hi""",joy,'
        "0.80,0.10,0.10,0.10,0.10,0.10,"
        "6,80,75,3,0.96,12.5"
    )


def test_summary_block():
    entries = [make_entry("fear", 5, when=NOW), make_entry("fear", 5, when=days_ago(1))]
    lines = render_csv(entries).split("\n")

    assert lines[3:] == [
        "",
        "Summary Insights",
        "Stability Indicator,100%",
        "Most Frequent Emotion,Fear",
        "Positive Ratio,16%",
        "Negative Ratio,80%",
    ]


def test_empty_export_still_has_header_and_summary():
    lines = render_csv([]).split("\n")
    assert lines[0].startswith("Timestamp,Text,")
    assert "Most Frequent Emotion,None" in lines
    assert "Positive Ratio,0%" in lines


def test_filename_uses_date():
    assert export_filename(date(2026, 1, 5)) == "emotional-drift-report-2026-01-05.csv"


def test_write_csv(tmp_path):
    path = write_csv([make_entry("calm")], tmp_path / "exports", today=date(2026, 10, 19))
    assert path.name == "emotional-drift-report-2026-10-19.csv"
    assert path.read_text(encoding="utf-8").startswith("Timestamp,")
