"""Export PDF de l'inventaire des médicaments."""
from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import date, datetime

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from medtrack.core import models

_STOCK_LEVEL_LABELS = {
    "adequate": "Adéquat",
    "low": "Bas",
    "critical": "Critique",
    "out": "Rupture",
}
_EXPIRY_LABELS = {
    "normal": "",
    "expiring": "Proche péremption",
    "expired": "Périmé",
}
_ROW_FILLS = {
    "expired": colors.Color(0.99, 0.89, 0.89),
    "expiring": colors.Color(1.0, 0.97, 0.85),
}


@dataclass(frozen=True)
class InventoryPdfColumn:
    key: str
    label: str
    ratio: float
    align: str


COLUMNS: tuple[InventoryPdfColumn, ...] = (
    InventoryPdfColumn("name", "Médicament", 0.22, "left"),
    InventoryPdfColumn("dosage", "Dosage", 0.10, "left"),
    InventoryPdfColumn("category", "Catégorie", 0.14, "left"),
    InventoryPdfColumn("batch_number", "Lot", 0.10, "left"),
    InventoryPdfColumn("expiration_date", "Péremption", 0.10, "center"),
    InventoryPdfColumn("stock", "Stock", 0.08, "right"),
    InventoryPdfColumn("stock_level", "Niveau", 0.10, "center"),
    InventoryPdfColumn("expiry_status", "Alerte", 0.16, "left"),
)


def _format_date_label(value: date | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%d/%m/%Y")


def _truncate(value: str, max_width: float, font_name: str, font_size: float) -> str:
    if pdfmetrics.stringWidth(value, font_name, font_size) <= max_width:
        return value
    ellipsis = "…"
    truncated = value
    while truncated and pdfmetrics.stringWidth(truncated + ellipsis, font_name, font_size) > max_width:
        truncated = truncated[:-1]
    return truncated + ellipsis


def _row_values(entry: models.DispensaryEntry) -> dict[str, str]:
    item = entry.item
    return {
        "name": item.name if item.status == "active" else f"{item.name} (inactif)",
        "dosage": item.dosage,
        "category": item.category,
        "batch_number": item.batch_number or "-",
        "expiration_date": _format_date_label(item.expiration_date),
        "stock": str(item.stock),
        "stock_level": _STOCK_LEVEL_LABELS[entry.stock_level],
        "expiry_status": _EXPIRY_LABELS[entry.expiry_status],
    }


def render_inventory_pdf(
    *,
    clinic_label: str,
    entries: list[models.DispensaryEntry],
    generated_at: datetime,
    threshold_days: int,
) -> bytes:
    buffer = io.BytesIO()
    page_size = landscape(A4)
    pdf = canvas.Canvas(buffer, pagesize=page_size)
    width, height = page_size
    margin = 14 * mm
    font_size = 8.5
    line_height = 14
    table_width = width - 2 * margin
    column_widths = [column.ratio * table_width for column in COLUMNS]
    page_number = 1

    def draw_header() -> float:
        pdf.setFont("Helvetica-Bold", 14)
        pdf.drawString(margin, height - margin, "Inventaire des médicaments")
        pdf.setFont("Helvetica", 9)
        pdf.drawString(
            margin,
            height - margin - 14,
            f"Clinique : {clinic_label} | généré le {generated_at.strftime('%d/%m/%Y %H:%M')}"
            f" | seuil de péremption : {threshold_days} jour(s)",
        )
        y = height - margin - 36
        pdf.setFillColor(colors.Color(0.2, 0.3, 0.45))
        pdf.rect(margin, y - 4, table_width, line_height, stroke=0, fill=1)
        pdf.setFillColor(colors.white)
        pdf.setFont("Helvetica-Bold", font_size)
        x = margin
        for column, col_width in zip(COLUMNS, column_widths):
            pdf.drawString(x + 3, y, column.label)
            x += col_width
        pdf.setFillColor(colors.black)
        return y - line_height

    def draw_footer() -> None:
        pdf.setFont("Helvetica", 7.5)
        pdf.drawRightString(width - margin, margin / 2, f"Page {page_number}")

    y = draw_header()
    if not entries:
        pdf.setFont("Helvetica-Oblique", 9)
        pdf.drawString(margin, y, "Aucun médicament enregistré.")
    for entry in entries:
        if y < margin + line_height:
            draw_footer()
            pdf.showPage()
            page_number += 1
            y = draw_header()
        fill = _ROW_FILLS.get(entry.expiry_status)
        if fill is not None:
            pdf.setFillColor(fill)
            pdf.rect(margin, y - 4, table_width, line_height, stroke=0, fill=1)
            pdf.setFillColor(colors.black)
        pdf.setFont("Helvetica", font_size)
        values = _row_values(entry)
        x = margin
        for column, col_width in zip(COLUMNS, column_widths):
            text = _truncate(values[column.key], col_width - 6, "Helvetica", font_size)
            if column.align == "right":
                pdf.drawRightString(x + col_width - 3, y, text)
            elif column.align == "center":
                pdf.drawCentredString(x + col_width / 2, y, text)
            else:
                pdf.drawString(x + 3, y, text)
            x += col_width
        pdf.setStrokeColor(colors.Color(0.85, 0.85, 0.85))
        pdf.line(margin, y - 4, margin + table_width, y - 4)
        y -= line_height
    draw_footer()
    pdf.save()
    return buffer.getvalue()
