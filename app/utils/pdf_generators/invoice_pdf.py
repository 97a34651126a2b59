# app/utils/pdf_generators/invoice_pdf.py
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.schemas.billing.invoice_schemas import InvoiceOut


def _money(value) -> str:
    return f"₹ {value:,.2f}"


def render_invoice_pdf(invoice: InvoiceOut, customer_name: str | None = None) -> bytes:
    """Render an invoice with its shipment lines and summary to PDF bytes."""
    buffer = BytesIO()
    styles = getSampleStyleSheet()
    story = []

    # -----------------------------
    # HEADER
    # -----------------------------
    story.append(Paragraph(f"<b>INVOICE {invoice.invoice_number}</b>", styles["Title"]))
    story.append(Spacer(1, 8))
    story.append(Paragraph(f"Status: {invoice.status.value.upper()}", styles["Normal"]))
    story.append(Paragraph(f"Invoice date: {invoice.invoice_date.strftime('%d-%m-%Y')}", styles["Normal"]))
    story.append(
        Paragraph(
            f"Billing period: {invoice.from_date.strftime('%d-%m-%Y')} to {invoice.to_date.strftime('%d-%m-%Y')}",
            styles["Normal"],
        )
    )
    story.append(Spacer(1, 12))

    # -----------------------------
    # CUSTOMER
    # -----------------------------
    story.append(Paragraph("<b>Customer:</b>", styles["Heading3"]))
    story.append(Paragraph(f"Account: {invoice.account_code}", styles["Normal"]))
    if customer_name:
        story.append(Paragraph(f"Name: {customer_name}", styles["Normal"]))
    story.append(Spacer(1, 12))

    # -----------------------------
    # SHIPMENT LINES
    # -----------------------------
    data = [["AWB", "Date", "Destination", "Pcs", "Chg. Wt", "Basic", "Fuel", "Tax", "Total"]]
    for line in invoice.lines:
        tax = line.cgst_amt + line.sgst_amt + line.igst_amt
        data.append([
            line.awb_no,
            line.shipment_date.strftime("%d-%m-%Y"),
            line.destination or "",
            str(line.pcs),
            f"{line.chargeable_weight:.3f}",
            f"{line.basic_amt:.2f}",
            f"{line.fuel_amt:.2f}",
            f"{tax:.2f}",
            f"{line.total_amt:.2f}",
        ])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
        ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
    ]))
    story.append(table)
    story.append(Spacer(1, 16))

    # -----------------------------
    # SUMMARY
    # -----------------------------
    story.append(Paragraph("<b>Summary:</b>", styles["Heading3"]))
    for label, value in (
        ("Basic Amount", invoice.basic_amount),
        ("Discount", invoice.discount_amount),
        ("Misc", invoice.misc_amount),
        ("Fuel", invoice.fuel_amount),
        ("CGST", invoice.cgst_amount),
        ("SGST", invoice.sgst_amount),
        ("IGST", invoice.igst_amount),
        ("Round Off", invoice.round_off),
    ):
        story.append(Paragraph(f"{label}: {_money(value)}", styles["Normal"]))
    story.append(Paragraph(f"<b>Grand Total: {_money(invoice.grand_total)}</b>", styles["Heading2"]))
    story.append(Paragraph(f"Shipments billed: {invoice.total_awb}", styles["Normal"]))

    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), title=invoice.invoice_number)
    doc.build(story)
    return buffer.getvalue()
