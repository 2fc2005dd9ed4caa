import csv
import io
from datetime import datetime
from pathlib import Path

import pytest

from bus2go.data_service import default_recharges, default_trips
from bus2go.history import merge_history
from bus2go.utils import exporter
from bus2go.utils.exporter import (
    STATEMENT_HEADER,
    build_statement_table,
    export_history_csv,
    export_history_pdf,
    render_csv,
)


@pytest.fixture
def history():
    return merge_history(default_trips(), default_recharges())


def test_csv_rows_match_statement_table(history) -> None:
    table = build_statement_table(history)
    lines = render_csv(history).splitlines()

    assert lines[0] == "Date,Type,Description,Amount (₹),Status"
    parsed = [tuple(row) for row in csv.reader(io.StringIO("\n".join(lines[1:])))]
    assert parsed == list(table.rows)


def test_statement_rows_are_formatted(history) -> None:
    table = build_statement_table(history)

    assert table.header == STATEMENT_HEADER
    assert table.rows[0] == ("2024-07-29 17:45", "Trip", "City Mall to Tech Park", "-20.50", "Completed")
    assert table.rows[-1] == ("2024-06-30 18:55", "Recharge", "Recharge via Net Banking", "+100.00", "Success")


def test_csv_rows_are_fully_quoted(history) -> None:
    second_line = render_csv(history).splitlines()[1]

    assert second_line.startswith('"2024-07-29 17:45","Trip"')


def test_export_csv_writes_file(tmp_path: Path, history) -> None:
    written = export_history_csv(tmp_path / "statement", history)

    assert written.suffix == ".csv"
    assert written.read_text(encoding="utf-8") == render_csv(history)


def test_export_pdf_writes_document(tmp_path: Path, history) -> None:
    pytest.importorskip("reportlab")

    written = export_history_pdf(
        tmp_path / "out" / "statement.pdf",
        history,
        generated_at=datetime(2024, 7, 30, 9, 0),
    )

    assert written.exists()
    assert written.read_bytes().startswith(b"%PDF")


def test_export_pdf_requires_entries(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        export_history_pdf(tmp_path / "empty.pdf", [])


def test_export_csv_requires_entries(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        export_history_csv(tmp_path / "empty.csv", [])

    assert not (tmp_path / "empty.csv").exists()


class _FakeMetrics:
    def __init__(self) -> None:
        self.registered: dict[str, str] = {}

    def getRegisteredFontNames(self):
        return list(self.registered)

    def registerFont(self, font) -> None:
        self.registered[font.name] = font.path


class _FakeTTFont:
    def __init__(self, name: str, path: str) -> None:
        self.name = name
        self.path = path


def test_statement_font_prefers_installed_truetype(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    regular = tmp_path / "Sans.ttf"
    bold = tmp_path / "Sans-Bold.ttf"
    regular.write_bytes(b"")
    bold.write_bytes(b"")
    monkeypatch.setattr(
        exporter,
        "FONT_CANDIDATES",
        [(str(tmp_path / "missing.ttf"), str(tmp_path / "missing-b.ttf")), (str(regular), str(bold))],
    )
    metrics = _FakeMetrics()

    fonts = exporter._ensure_font_registered(metrics, _FakeTTFont)

    assert fonts == (exporter.STATEMENT_FONT, exporter.STATEMENT_FONT_BOLD)
    assert metrics.registered == {
        exporter.STATEMENT_FONT: str(regular),
        exporter.STATEMENT_FONT_BOLD: str(bold),
    }
    assert exporter._ensure_font_registered(metrics, _FakeTTFont) == fonts


def test_statement_font_falls_back_to_helvetica(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        exporter, "FONT_CANDIDATES", [(str(tmp_path / "a.ttf"), str(tmp_path / "b.ttf"))]
    )
    metrics = _FakeMetrics()

    assert exporter._ensure_font_registered(metrics, _FakeTTFont) == ("Helvetica", "Helvetica-Bold")
    assert metrics.registered == {}
