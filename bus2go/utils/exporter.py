"""Turn the merged trip/recharge history into CSV text or a PDF statement.

Both outputs are built from the same :class:`StatementTable`, so dates, signs
and rounding are identical whichever format the passenger downloads.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from ..formatting import describe, format_datetime, format_signed_amount
from ..models import HistoryItem

logger = logging.getLogger(__name__)

STATEMENT_TITLE = "BUS2go Transaction Statement"
STATEMENT_HEADER = ("Date", "Type", "Description", "Amount (₹)", "Status")
CSV_FILENAME = "bus2go-statement.csv"
PDF_FILENAME = "bus2go-statement.pdf"

STATEMENT_FONT = "StatementSans"
STATEMENT_FONT_BOLD = "StatementSans-Bold"
FALLBACK_FONT = "Helvetica"
FALLBACK_FONT_BOLD = "Helvetica-Bold"

# Regular and bold faces that carry the rupee sign (U+20B9).
FONT_CANDIDATES: list[tuple[str, str]] = [
    ("C:/Windows/Fonts/segoeui.ttf", "C:/Windows/Fonts/segoeuib.ttf"),
    ("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
     "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    ("/usr/share/fonts/dejavu/DejaVuSans.ttf", "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf"),
    ("/Library/Fonts/DejaVuSans.ttf", "/Library/Fonts/DejaVuSans-Bold.ttf"),
]

_REPORTLAB_CACHE: dict[str, object] | None = None


@dataclass(frozen=True)
class StatementTable:
    title: str
    header: tuple[str, ...]
    rows: tuple[tuple[str, str, str, str, str], ...]


def statement_row(item: HistoryItem) -> tuple[str, str, str, str, str]:
    return (
        format_datetime(item.timestamp),
        item.kind.value,
        describe(item),
        format_signed_amount(item.signed_amount),
        item.status,
    )


def build_statement_table(
    items: Sequence[HistoryItem], *, title: str = STATEMENT_TITLE
) -> StatementTable:
    return StatementTable(
        title=title,
        header=STATEMENT_HEADER,
        rows=tuple(statement_row(item) for item in items),
    )


def render_csv(items: Sequence[HistoryItem]) -> str:
    """CSV text: a plain header line followed by fully quoted rows."""

    table = build_statement_table(items)
    buffer = io.StringIO()
    buffer.write(",".join(table.header) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(table.rows)
    return buffer.getvalue()


def export_history_csv(output_path: Path | str, items: Sequence[HistoryItem]) -> Path:
    if not items:
        raise ValueError("No history entries supplied for export.")

    path = Path(output_path)
    if path.suffix.lower() != ".csv":
        path = path.with_suffix(".csv")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_csv(items), encoding="utf-8")
    logger.info("Wrote CSV statement with %d rows to %s", len(items), path)
    return path


def _load_reportlab() -> dict[str, object]:
    global _REPORTLAB_CACHE
    if _REPORTLAB_CACHE is None:
        try:
            from reportlab.lib import colors  # type: ignore
            from reportlab.lib.pagesizes import A4  # type: ignore
            from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet  # type: ignore
            from reportlab.lib.units import mm  # type: ignore
            from reportlab.pdfbase import pdfmetrics  # type: ignore
            from reportlab.pdfbase.ttfonts import TTFont  # type: ignore
            from reportlab.platypus import (  # type: ignore
                HRFlowable,
                Paragraph,
                SimpleDocTemplate,
                Spacer,
                Table,
                TableStyle,
            )
        except ImportError as exc:  # pragma: no cover - dependency guard
            raise RuntimeError(
                "ReportLab is required for PDF export. Install it with 'pip install reportlab'."
            ) from exc
        _REPORTLAB_CACHE = {
            "colors": colors,
            "A4": A4,
            "ParagraphStyle": ParagraphStyle,
            "getSampleStyleSheet": getSampleStyleSheet,
            "mm": mm,
            "pdfmetrics": pdfmetrics,
            "TTFont": TTFont,
            "HRFlowable": HRFlowable,
            "Paragraph": Paragraph,
            "SimpleDocTemplate": SimpleDocTemplate,
            "Spacer": Spacer,
            "Table": Table,
            "TableStyle": TableStyle,
        }
    return _REPORTLAB_CACHE


def _ensure_font_registered(pdfmetrics, TTFont) -> tuple[str, str]:
    """Register a TrueType face with the rupee glyph and return (regular, bold).

    Helvetica is only used when no candidate font is installed.
    """

    registered = pdfmetrics.getRegisteredFontNames()
    if STATEMENT_FONT in registered:
        bold = STATEMENT_FONT_BOLD if STATEMENT_FONT_BOLD in registered else STATEMENT_FONT
        return STATEMENT_FONT, bold
    for regular_path, bold_path in FONT_CANDIDATES:
        regular = Path(regular_path)
        if not regular.exists():
            continue
        pdfmetrics.registerFont(TTFont(STATEMENT_FONT, str(regular)))
        bold = Path(bold_path)
        if bold.exists():
            pdfmetrics.registerFont(TTFont(STATEMENT_FONT_BOLD, str(bold)))
            return STATEMENT_FONT, STATEMENT_FONT_BOLD
        return STATEMENT_FONT, STATEMENT_FONT
    logger.warning("No TrueType font with the rupee sign found; using %s", FALLBACK_FONT)
    return FALLBACK_FONT, FALLBACK_FONT_BOLD


def export_history_pdf(
    output_path: Path | str,
    items: Sequence[HistoryItem],
    *,
    generated_at: datetime | None = None,
    title: str = STATEMENT_TITLE,
) -> Path:
    """Render the statement table into a paginated PDF and return the written path."""

    if not items:
        raise ValueError("No history entries supplied for export.")

    path = Path(output_path)
    if path.suffix.lower() != ".pdf":
        path = path.with_suffix(".pdf")
    path.parent.mkdir(parents=True, exist_ok=True)

    rl = _load_reportlab()
    colors = rl["colors"]
    A4 = rl["A4"]
    ParagraphStyle = rl["ParagraphStyle"]
    getSampleStyleSheet = rl["getSampleStyleSheet"]
    mm = rl["mm"]
    HRFlowable = rl["HRFlowable"]
    Paragraph = rl["Paragraph"]
    SimpleDocTemplate = rl["SimpleDocTemplate"]
    Spacer = rl["Spacer"]
    Table = rl["Table"]
    TableStyle = rl["TableStyle"]
    pdfmetrics = rl["pdfmetrics"]
    TTFont = rl["TTFont"]

    base_font, bold_font = _ensure_font_registered(pdfmetrics, TTFont)

    table = build_statement_table(items, title=title)
    generated = generated_at or datetime.now()
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "StatementTitle",
        parent=styles["Heading1"],
        fontName=bold_font,
        fontSize=18,
        leading=22,
        spaceAfter=4,
        textColor=colors.HexColor("#312e81"),
    )
    subtitle_style = ParagraphStyle(
        "StatementSubtitle",
        parent=styles["Normal"],
        fontName=base_font,
        fontSize=9,
        textColor=colors.HexColor("#4b5563"),
        spaceAfter=10,
    )

    doc = SimpleDocTemplate(
        str(path),
        pagesize=A4,
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=20 * mm,
        bottomMargin=16 * mm,
        title=title,
    )
    widths = [doc.width * fraction for fraction in (0.2, 0.12, 0.38, 0.15, 0.15)]

    grid = Table([list(table.header), *[list(row) for row in table.rows]], colWidths=widths, repeatRows=1)
    grid.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), base_font),
                ("FONTNAME", (0, 0), (-1, 0), bold_font),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#4f46e5")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("ALIGN", (3, 1), (3, -1), "RIGHT"),
                (
                    "ROWBACKGROUNDS",
                    (0, 1),
                    (-1, -1),
                    [colors.HexColor("#f8fafc"), colors.HexColor("#eef2ff")],
                ),
                ("BOX", (0, 0), (-1, -1), 0.4, colors.HexColor("#c7d2fe")),
                ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#e0e7ff")),
                ("TOPPADDING", (0, 0), (-1, -1), 5),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ]
        )
    )

    story: list = [
        Paragraph(table.title, title_style),
        Paragraph(f"Generated {generated.strftime('%d %b %Y %H:%M')}", subtitle_style),
        HRFlowable(width="100%", thickness=1, color=colors.HexColor("#4f46e5")),
        Spacer(1, 10),
        grid,
    ]

    def _draw_footer(canvas, doc) -> None:  # pragma: no cover - rendering only
        canvas.saveState()
        canvas.setFont(base_font, 8)
        canvas.setFillColor(colors.HexColor("#6b7280"))
        canvas.drawRightString(doc.leftMargin + doc.width, doc.bottomMargin - 10, f"Page {doc.page}")
        canvas.restoreState()

    doc.build(story, onFirstPage=_draw_footer, onLaterPages=_draw_footer)
    logger.info("Wrote PDF statement with %d rows to %s", len(table.rows), path)
    return path


__all__ = [
    "StatementTable",
    "build_statement_table",
    "export_history_csv",
    "export_history_pdf",
    "render_csv",
    "statement_row",
]
