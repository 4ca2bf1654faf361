# Overview: A4 PDF rendering of X/Z report payloads.

from __future__ import annotations

import io
from datetime import datetime
from decimal import Decimal
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from kasse.time_utils import utcnow


PAYMENT_METHOD_LABELS = {
    "cash": "Kontant",
    "card": "Kort",
    "mobile": "Mobil",
}

_TABLE_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1f2937")),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
])

_SUMMARY_STYLE = TableStyle([
    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
    ("ALIGN", (1, 0), (1, -1), "RIGHT"),
    ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.lightgrey),
])


def format_nok(amount_ore: Optional[int]) -> str:
    """12345 -> "123,45 kr" """
    value = Decimal(amount_ore or 0) / 100
    return f"{value:,.2f}".replace(",", " ").replace(".", ",") + " kr"


def pdf_filename(report: dict, generated_at: Optional[datetime] = None) -> str:
    prefix = "Z-Rapport" if report.get("report_type") == "Z-Report" else "X-Rapport"
    stamp = (generated_at or utcnow()).strftime("%Y-%m-%d-%H%M%S")
    return f"{prefix}-{report.get('session_number')}-{stamp}.pdf"


def _footer(canvas, doc):
    width, _height = A4
    canvas.setFont("Helvetica", 8)
    canvas.drawRightString(width - 2 * cm, 1 * cm, f"Side {doc.page}")


def _breakdown_table(title: str, header: list, rows: list) -> list:
    styles = getSampleStyleSheet()
    if not rows:
        return []
    table = Table([header] + rows, colWidths=[7 * cm, 3 * cm, 4 * cm, 3 * cm][: len(header)])
    table.setStyle(_TABLE_STYLE)
    return [Paragraph(title, styles["Heading3"]), table, Spacer(1, 10)]


def render_report_pdf(report: dict) -> bytes:
    """Render an X- or Z-report payload as an A4 document."""
    is_z = report.get("report_type") == "Z-Report"
    styles = getSampleStyleSheet()
    buffer = io.BytesIO()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=2 * cm,
        leftMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
        title=f"{'Z' if is_z else 'X'}-rapport {report.get('session_number')}",
    )

    store = report.get("store") or {}
    device = report.get("device") or {}
    cashier = report.get("cashier") or {}

    elements = [
        Paragraph("Z-rapport (sluttrapport)" if is_z else "X-rapport (mellomrapport)", styles["Title"]),
        Paragraph(escape(store.get("name") or ""), styles["Heading2"]),
        Spacer(1, 8),
    ]

    summary = [
        ["Sesjon", report.get("session_number") or ""],
        ["Kasse", device.get("name") or "N/A"],
        ["Kasserer", cashier.get("name") or "N/A"],
        ["Åpnet", report.get("opened_at") or ""],
    ]
    if is_z:
        summary.append(["Stengt", report.get("closed_at") or ""])
    summary += [
        ["Generert", report.get("report_generated_at") or ""],
        ["Antall transaksjoner", str(report.get("transactions_count", 0))],
        ["Totalt salg", format_nok(report.get("total_amount"))],
        ["Grunnlag MVA", format_nok(report.get("vat_base"))],
        [f"MVA ({report.get('vat_rate', 0):g}%)", format_nok(report.get("vat_amount"))],
        ["Kontant", format_nok(report.get("cash_amount"))],
        ["Kort", format_nok(report.get("card_amount"))],
        ["Mobil", format_nok(report.get("mobile_amount"))],
        ["Annet", format_nok(report.get("other_amount"))],
    ]
    if report.get("tips_enabled"):
        summary.append(["Drikkepenger", format_nok(report.get("total_tips"))])
    summary += [
        ["Inngående veksel", format_nok(report.get("opening_balance"))],
        ["Forventet kontant", format_nok(report.get("expected_cash"))],
    ]
    if is_z:
        summary += [
            ["Opptalt kontant", format_nok(report.get("actual_cash"))],
            ["Kassedifferanse", format_nok(report.get("cash_difference"))],
        ]
    summary += [
        ["Skuffåpninger", str(report.get("cash_drawer_opens", 0))],
        ["Nullinnslag", str(report.get("nullinnslag_count", 0))],
        ["Kvitteringer", str(report.get("receipt_count", 0))],
        ["Manuelle rabatter", f"{report['manual_discounts']['count']} / {format_nok(report['manual_discounts']['amount'])}"],
        ["Linjekorreksjoner", f"{report['line_corrections']['total_count']} / {format_nok(report['line_corrections']['total_amount_reduction'])}"],
    ]

    summary_table = Table(summary, colWidths=[8 * cm, 9 * cm])
    summary_table.setStyle(_SUMMARY_STYLE)
    elements += [summary_table, Spacer(1, 14)]

    elements += _breakdown_table(
        "Betalingsmåter",
        ["Betalingsmåte", "Antall", "Beløp", "Tips"],
        [
            [PAYMENT_METHOD_LABELS.get(method, method), str(row["count"]), format_nok(row["amount"]), format_nok(row["tips"])]
            for method, row in (report.get("by_payment_method") or {}).items()
        ],
    )
    elements += _breakdown_table(
        "Transaksjonstyper",
        ["Kode", "Antall", "Beløp"],
        [
            [row.get("code") or "N/A", str(row["count"]), format_nok(row["amount"])]
            for row in (report.get("transactions_by_type") or {}).values()
        ],
    )

    if is_z:
        elements += _breakdown_table(
            "Hendelser",
            ["Hendelse", "Kode", "Antall"],
            [
                [row["description"], row["code"], str(row["count"])]
                for row in (report.get("event_summary") or {}).values()
            ],
        )
        if report.get("closing_notes"):
            elements += [Paragraph("Merknader", styles["Heading3"]), Paragraph(escape(report["closing_notes"]), styles["Normal"])]

    doc.build(elements, onFirstPage=_footer, onLaterPages=_footer)
    return buffer.getvalue()
