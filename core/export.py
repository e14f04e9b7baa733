from __future__ import annotations

import csv
import io
from typing import Iterable, List, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.data import ContractRecord, HeaderDescriptor, get_val_any
from core.projection import EXPIRY_LABEL, project_headers, project_row, projection_frame
from core.status import DAYS_FIELD


CSV_FILENAME = "contracts_report.csv"
PDF_FILENAME = "contracts_report.pdf"
PDF_TITLE = "Contract Management Report"

_HEADER_FILL = colors.Color(59 / 255, 130 / 255, 246 / 255)
_STRIPE_FILL = colors.HexColor("#f1f5f9")


def export_csv(records: Iterable[ContractRecord], headers: Sequence[HeaderDescriptor]) -> bytes:
    df = projection_frame(records, headers)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n").encode("utf-8")


def pdf_rows(records: Iterable[ContractRecord], columns: Sequence[HeaderDescriptor]) -> List[List[str]]:
    """Projected cells, with the expiry date annotated with the remaining days."""
    rows: List[List[str]] = []
    for record in records:
        row = project_row(record, columns)
        for i, col in enumerate(columns):
            if col.label == EXPIRY_LABEL:
                row[i] = f"{row[i]} ({get_val_any(record, DAYS_FIELD)} days remaining)"
        rows.append(row)
    return rows


def export_pdf(
    records: Iterable[ContractRecord],
    headers: Sequence[HeaderDescriptor],
    *,
    status_label: str = "all",
    org_unit_label: str = "all",
) -> bytes:
    columns = project_headers(headers)
    styles = getSampleStyleSheet()
    cell_style = ParagraphStyle("cell", parent=styles["BodyText"], fontSize=8, leading=10)
    head_style = ParagraphStyle("head", parent=cell_style, textColor=colors.white, fontName="Helvetica-Bold")

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4),
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=10 * mm,
        bottomMargin=10 * mm,
        title=PDF_TITLE,
    )
    story = [
        Paragraph(PDF_TITLE, styles["Title"]),
        Paragraph(escape(f"Active filter: {status_label} | Org unit: {org_unit_label}"), styles["Normal"]),
        Spacer(1, 4 * mm),
    ]

    if not columns:
        story.append(Paragraph("No columns available for export.", styles["Normal"]))
    else:
        data = [[Paragraph(escape(c.label), head_style) for c in columns]]
        data += [[Paragraph(escape(cell), cell_style) for cell in row] for row in pdf_rows(records, columns)]
        table = Table(data, colWidths=[doc.width / len(columns)] * len(columns), repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), _HEADER_FILL),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, _STRIPE_FILL]),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("TOPPADDING", (0, 0), (-1, -1), 2),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
                    ("LEFTPADDING", (0, 0), (-1, -1), 2),
                    ("RIGHTPADDING", (0, 0), (-1, -1), 2),
                ]
            )
        )
        story.append(table)

    doc.build(story)
    return buf.getvalue()
