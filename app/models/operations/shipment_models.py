from decimal import Decimal
from sqlalchemy import Column, Integer, String, Boolean, Numeric, Date, Enum, ForeignKey, Index
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.shipment_status import ShipmentStatus


class Shipment(Base, TimestampMixin, AuditMixin):
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True)
    awb_no = Column(String(50), nullable=False, unique=True, index=True)
    account_code = Column(
        String(50),
        ForeignKey("customer_accounts.account_code", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    shipment_date = Column(Date, nullable=False, index=True)

    sector = Column(String(50), nullable=True)
    service = Column(String(50), nullable=True)
    destination = Column(String(100), nullable=True)
    consignee_name = Column(String(255), nullable=True)
    payment = Column(String(30), nullable=False, default="Credit")

    pcs = Column(Integer, nullable=False, default=1)
    actual_weight = Column(Numeric(10, 3), nullable=False, default=Decimal("0.000"))
    volumetric_weight = Column(Numeric(10, 3), nullable=False, default=Decimal("0.000"))

    # tariffed at booking; billing sums these as stored
    basic_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    discount_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    misc_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    fuel_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    cgst_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    sgst_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    igst_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    is_hold = Column(Boolean, nullable=False, default=False)
    hold_reason = Column(String(100), nullable=True)
    complete_data_lock = Column(Boolean, nullable=False, default=False)

    billing_locked = Column(Boolean, nullable=False, default=False)
    is_billed = Column(Boolean, nullable=False, default=False)
    invoice_number = Column(String(50), nullable=True, index=True)

    status = Column(Enum(ShipmentStatus), nullable=False, default=ShipmentStatus.unassigned, index=True)
    run_no = Column(String(50), nullable=True, index=True)
    bag_no = Column(String(50), nullable=True, index=True)
    club_no = Column(String(50), nullable=True, index=True)
    manifest_no = Column(String(50), nullable=True, index=True)

    __table_args__ = (
        Index("ix_shipment_account_date", "account_code", "shipment_date"),
        Index("ix_shipment_billing", "account_code", "billing_locked", "is_billed"),
    )

    def __repr__(self):
        return f"<Shipment {self.awb_no} status={self.status} hold={self.is_hold}>"
