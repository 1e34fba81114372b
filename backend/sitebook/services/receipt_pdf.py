"""Payment receipt PDF (reportlab platypus). Branding comes in as an argument; nothing is read from global state."""
from decimal import Decimal
from io import BytesIO
from typing import Any, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from sitebook.branding import BrandingConfig

SUBTITLE = "Construction Management"
DEFAULT_ITEM = "Wage / Advance Payment"
THANK_YOU = "Thank you for your hard work!"
PAYMENT_TYPE_LABELS = {
    "salary_payment": "Wage Payment",
    "cash_advance": "Cash Advance",
    "bonus": "Bonus",
}


def receipt_number(payment_id: Any) -> str:
    """First 8 characters of the zero-padded id, upper-cased."""
    return str(payment_id).zfill(8)[:8].upper()


def format_amount(amount: Any, currency: str = "Rs.") -> str:
    return f"{currency} {Decimal(str(amount or 0)):,.2f}"


def _p(text: Optional[str], style) -> Paragraph:
    return Paragraph(escape(text or ""), style)


def render_receipt(
    payment: Any,
    branding: BrandingConfig,
    payee_name: Optional[str] = None,
    payee_phone: Optional[str] = None,
    item_label: Optional[str] = None,
    currency: str = "Rs.",
) -> bytes:
    """
    Layout: brand header (name, subtitle, address) beside the RECEIPT block (number, date, method),
    then 'Billed To', a one-row item table, the total, and a footer line.
    """
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4,
        leftMargin=14 * mm, rightMargin=14 * mm, topMargin=16 * mm, bottomMargin=16 * mm,
        title=f"Receipt {receipt_number(payment.id)}",
    )
    styles = getSampleStyleSheet()
    brand_style = ParagraphStyle("brand", parent=styles["Title"], alignment=0, fontSize=22, leading=26)
    muted = ParagraphStyle("muted", parent=styles["Normal"], textColor=colors.HexColor("#646464"))
    receipt_title = ParagraphStyle("receipt", parent=styles["Heading2"], spaceAfter=4)
    footer_style = ParagraphStyle("footer", parent=muted, alignment=TA_CENTER, textColor=colors.HexColor("#969696"))

    brand_name = branding.display_name
    left = [_p(brand_name, brand_style), _p(SUBTITLE, muted)]
    if branding.address:
        left.append(_p(branding.address, muted))
    if branding.phone:
        left.append(_p(branding.phone, muted))
    right = [
        _p("RECEIPT", receipt_title),
        _p(f"Receipt #: {receipt_number(payment.id)}", styles["Normal"]),
        _p(f"Date: {payment.payment_date.strftime('%d/%m/%Y')}", styles["Normal"]),
    ]
    if payment.method:
        right.append(_p(f"Method: {payment.method}", styles["Normal"]))
    header = Table([[left, right]], colWidths=[110 * mm, 72 * mm])
    header.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))

    billed = [_p("Billed To:", styles["Normal"]), _p(payee_name or "-", styles["Heading3"])]
    if payee_phone:
        billed.append(_p(payee_phone, muted))

    label = item_label or PAYMENT_TYPE_LABELS.get(getattr(payment, "payment_type", ""), None) or DEFAULT_ITEM
    if getattr(payment, "notes", None):
        label = f"{label} - {payment.notes}"
    items = Table(
        [["Item / Description", "Amount"], [_p(label, styles["Normal"]), format_amount(payment.amount, currency)]],
        colWidths=[142 * mm, 40 * mm],
    )
    items.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#424242")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ]))
    total = Table([["", f"Total Paid: {format_amount(payment.amount, currency)}"]], colWidths=[110 * mm, 72 * mm])
    total.setStyle(TableStyle([("FONTNAME", (1, 0), (1, 0), "Helvetica-Bold"), ("FONTSIZE", (1, 0), (1, 0), 12)]))

    elements = [
        header, Spacer(1, 10 * mm),
        *billed, Spacer(1, 8 * mm),
        items, Spacer(1, 6 * mm),
        total, Spacer(1, 30 * mm),
        _p(THANK_YOU, footer_style),
        _p(branding.receipt_footer or brand_name, footer_style),
    ]
    doc.build(elements)
    return buf.getvalue()
