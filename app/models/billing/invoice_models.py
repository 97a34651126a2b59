from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, JSON, Index, Boolean, Date, DateTime, text
from sqlalchemy.orm import relationship
from decimal import Decimal
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.invoice_status import InvoiceStatus


class Invoice(Base, TimestampMixin, AuditMixin):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    invoice_sr_no = Column(Integer, nullable=False, unique=True, index=True)
    invoice_number = Column(String(50), nullable=False, unique=True, index=True)
    branch = Column(String(20), nullable=False)
    invoice_date = Column(Date, nullable=False)

    account_code = Column(String(50), ForeignKey("customer_accounts.account_code", ondelete="RESTRICT"), nullable=False, index=True)
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=False)
    status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.issued, index=True)

    total_awb = Column(Integer, nullable=False, default=0)
    basic_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    discount_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    misc_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    fuel_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    cgst_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    sgst_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    igst_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    taxable_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    raw_total = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    round_off = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    grand_total = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    customer_snapshot = Column(JSON, nullable=False, default=dict)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(100), nullable=True)
    cancel_reason = Column(String(500), nullable=True)

    lines = relationship("InvoiceLine", back_populates="invoice", cascade="all, delete-orphan", lazy="selectin", order_by="InvoiceLine.id")

    __table_args__ = (
        Index("ix_invoice_account_status", "account_code", "status"),
    )

    def __repr__(self):
        return f"<Invoice {self.invoice_number} status={self.status}>"


class InvoiceLine(Base, TimestampMixin):
    """Snapshot of one billed shipment at the time the invoice was cut."""

    __tablename__ = "invoice_lines"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    awb_no = Column(String(50), ForeignKey("shipments.awb_no", ondelete="RESTRICT"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    shipment_date = Column(Date, nullable=False)
    destination = Column(String(100), nullable=True)
    pcs = Column(Integer, nullable=False, default=1)
    chargeable_weight = Column(Numeric(10, 3), nullable=False, default=Decimal("0.000"))

    basic_amt = Column(Numeric(14, 2), nullable=False)
    discount_amt = Column(Numeric(14, 2), nullable=False)
    misc_amt = Column(Numeric(14, 2), nullable=False)
    fuel_amt = Column(Numeric(14, 2), nullable=False)
    cgst_amt = Column(Numeric(14, 2), nullable=False)
    sgst_amt = Column(Numeric(14, 2), nullable=False)
    igst_amt = Column(Numeric(14, 2), nullable=False)
    total_amt = Column(Numeric(14, 2), nullable=False)

    invoice = relationship("Invoice", back_populates="lines")

    __table_args__ = (
        # one live invoice per AWB; cancelled invoices keep their lines inactive
        Index(
            "uq_invoice_line_active_awb",
            "awb_no",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    def __repr__(self):
        return f"<InvoiceLine invoice_id={self.invoice_id} awb={self.awb_no} total={self.total_amt}>"
