"""
PDF Generation Service
Creates customer bills for sales and the inventory report, then hands the
bytes to object storage and returns the stored file's URL.
"""
from io import BytesIO
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from shopdesk.core.config import settings
from shopdesk.models.item import Item
from shopdesk.models.sale import Sale

PDF_MIME_TYPE = "application/pdf"


def _money(value) -> str:
    return f"{Decimal(value or 0):,.2f}"


def _styles() -> dict:
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            'CustomTitle',
            parent=styles['Heading1'],
            fontSize=24,
            textColor=colors.HexColor('#1a56db'),
            alignment=TA_CENTER,
            spaceAfter=12
        ),
        "heading": ParagraphStyle(
            'CustomHeading',
            parent=styles['Heading2'],
            fontSize=14,
            textColor=colors.HexColor('#1f2937'),
            spaceAfter=6
        ),
        "normal": ParagraphStyle(
            'CustomNormal',
            parent=styles['Normal'],
            fontSize=10,
            textColor=colors.HexColor('#374151')
        ),
        "footer": ParagraphStyle(
            'Footer',
            parent=styles['Normal'],
            fontSize=8,
            textColor=colors.grey,
            alignment=TA_CENTER
        ),
    }


TABLE_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f3f4f6')),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.HexColor('#1f2937')),
    ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('FONTSIZE', (0, 0), (-1, 0), 10),
    ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
    ('TOPPADDING', (0, 0), (-1, 0), 8),
    ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#fafafa')]),
    ('TOPPADDING', (0, 1), (-1, -1), 6),
    ('BOTTOMPADDING', (0, 1), (-1, -1), 6),
])


def build_customer_bill_pdf(sale: Sale, lines: Sequence[dict]) -> BytesIO:
    """
    Lay out a customer bill.

    Args:
        sale: Committed sale (id, customer, payment method, total)
        lines: Dicts with item_name, quantity, unit_price, total_price

    Returns:
        BytesIO buffer containing PDF data
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.5*inch, bottomMargin=0.5*inch)
    styles = _styles()
    normal_style = styles["normal"]
    elements = []

    elements.append(Paragraph("INVOICE", styles["title"]))
    elements.append(Spacer(1, 0.3*inch))

    created = sale.created_at or datetime.now()
    shop_info = f"<b>{escape(settings.SHOP_NAME)}</b>"
    if settings.SHOP_CONTACT:
        shop_info += f"<br/>{escape(settings.SHOP_CONTACT)}"
    info_table = Table(
        [[
            Paragraph(shop_info, normal_style),
            Paragraph(f"<b>Bill #:</b> {sale.id}<br/>"
                      f"<b>Date:</b> {created.strftime('%d %b %Y, %I:%M %p')}<br/>"
                      f"<b>Payment:</b> {(sale.payment_method or 'cash').upper()}", normal_style),
        ]],
        colWidths=[3.5*inch, 3*inch],
    )
    info_table.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # Walk-in customers have no name on file
    elements.append(Paragraph("<b>Bill To:</b>", styles["heading"]))
    customer_info = f"<b>{escape(sale.customer_name or 'Walk-in Customer')}</b>"
    if sale.customer_phone:
        customer_info += f"<br/>Phone: {escape(sale.customer_phone)}"
    elements.append(Paragraph(customer_info, normal_style))
    elements.append(Spacer(1, 0.3*inch))

    items_data = [["Item", "Quantity", "Rate", "Amount"]]
    for line in lines:
        items_data.append([
            Paragraph(escape(str(line["item_name"])), normal_style),
            str(line["quantity"]),
            _money(line["unit_price"]),
            _money(line["total_price"]),
        ])
    items_table = Table(items_data, colWidths=[3*inch, 1*inch, 1.2*inch, 1.3*inch], repeatRows=1)
    items_table.setStyle(TABLE_STYLE)
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    total_table = Table(
        [['', '', Paragraph("<b>TOTAL:</b>", styles["heading"]),
          Paragraph(f"<b>{_money(sale.total_amount)}</b>", styles["heading"])]],
        colWidths=[3*inch, 1*inch, 1.2*inch, 1.3*inch],
    )
    total_table.setStyle(TableStyle([
        ('ALIGN', (2, 0), (-1, -1), 'RIGHT'),
        ('LINEABOVE', (2, 0), (-1, 0), 1, colors.black),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    elements.append(total_table)

    elements.append(Spacer(1, 0.8*inch))
    elements.append(Paragraph("Thank you for your business!", styles["footer"]))
    elements.append(Paragraph("Items can be returned within 7 days with this bill.", styles["footer"]))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def build_inventory_report_pdf(items: Iterable[Item]) -> BytesIO:
    """Tabular stock listing with per-item stock value and a grand total."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.5*inch, bottomMargin=0.5*inch)
    styles = _styles()
    elements = [
        Paragraph("Inventory Report", styles["title"]),
        Paragraph(f"{escape(settings.SHOP_NAME)} - generated on {datetime.now().strftime('%d %b %Y at %I:%M %p')}",
                  styles["footer"]),
        Spacer(1, 0.3*inch),
    ]

    rows = [["Item Name", "Category", "Quantity", "Price", "Value"]]
    total_value = Decimal("0")
    low_stock_rows = []
    for item in items:
        value = Decimal(item.unit_price or 0) * item.quantity
        total_value += value
        if item.is_low_stock:
            low_stock_rows.append(len(rows))
        rows.append([
            Paragraph(escape(item.name), styles["normal"]),
            item.category or "N/A",
            str(item.quantity),
            _money(item.unit_price),
            _money(value),
        ])
    rows.append(["", "", "", "Total", _money(total_value)])

    table = Table(rows, colWidths=[2.4*inch, 1.3*inch, 0.9*inch, 0.9*inch, 1.1*inch], repeatRows=1)
    table.setStyle(TABLE_STYLE)
    for row in low_stock_rows:
        table.setStyle(TableStyle([('TEXTCOLOR', (2, row), (2, row), colors.HexColor('#b91c1c'))]))
    table.setStyle(TableStyle([('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold')]))
    elements.append(table)

    doc.build(elements)
    buffer.seek(0)
    return buffer


class DocumentRenderer:
    """Renders PDFs and stores them, returning the stored file's URL."""

    def __init__(self, storage):
        self.storage = storage

    def render_customer_bill(self, sale: Sale, lines: Sequence[dict]) -> str:
        pdf = build_customer_bill_pdf(sale, lines)
        file_name = f"bill-{sale.id}-{int(datetime.now().timestamp())}.pdf"
        return self.storage.store(pdf.getvalue(), file_name, PDF_MIME_TYPE, "bills")

    def render_inventory_report(self, items: Iterable[Item]) -> str:
        pdf = build_inventory_report_pdf(items)
        file_name = f"inventory-report-{int(datetime.now().timestamp())}.pdf"
        return self.storage.store(pdf.getvalue(), file_name, PDF_MIME_TYPE, "reports")
