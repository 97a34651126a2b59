from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from decimal import Decimal
from datetime import datetime, date

from app.models.enums.invoice_status import InvoiceStatus
from app.schemas.common import ORMBase


# =====================================================
# BILLING LOCK
# =====================================================
class DateRange(BaseModel):
    account_code: str
    from_date: date
    to_date: date

    @model_validator(mode="after")
    def check_range(self):
        if self.from_date > self.to_date:
            raise ValueError("from_date must be on or before to_date")
        return self


class BillingLockRequest(DateRange):
    pass


class BillingLockResult(BaseModel):
    account_code: str
    from_date: date
    to_date: date
    locked_count: int


# =====================================================
# BILLABLE SUMMARY
# =====================================================
class BillableLine(BaseModel):
    awb_no: str
    shipment_date: date
    destination: Optional[str]
    pcs: int
    chargeable_weight: Decimal
    basic_amt: Decimal
    discount_amt: Decimal
    misc_amt: Decimal
    fuel_amt: Decimal
    cgst_amt: Decimal
    sgst_amt: Decimal
    igst_amt: Decimal
    total_amt: Decimal


class InvoiceTotals(BaseModel):
    total_awb: int
    basic_amount: Decimal
    discount_amount: Decimal
    misc_amount: Decimal
    fuel_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    taxable_amount: Decimal
    raw_total: Decimal
    round_off: Decimal
    grand_total: Decimal


class BillableSummary(BaseModel):
    account_code: str
    from_date: date
    to_date: date
    totals: InvoiceTotals
    shipments: List[BillableLine]


# =====================================================
# CREATE
# =====================================================
class InvoiceBundle(DateRange):
    # None bills everything billable in the range; an empty list is skipped
    awb_nos: Optional[List[str]] = None
    branch: Optional[str] = None
    invoice_date: Optional[date] = None


class InvoiceCreateRequest(BaseModel):
    invoices: List[InvoiceBundle] = Field(min_length=1)


class InvoiceCancel(BaseModel):
    reason: str = Field(min_length=1)


# =====================================================
# OUTPUT
# =====================================================
class InvoiceLineOut(ORMBase):
    awb_no: str
    shipment_date: date
    destination: Optional[str]
    pcs: int
    chargeable_weight: Decimal
    basic_amt: Decimal
    discount_amt: Decimal
    misc_amt: Decimal
    fuel_amt: Decimal
    cgst_amt: Decimal
    sgst_amt: Decimal
    igst_amt: Decimal
    total_amt: Decimal
    is_active: bool


class InvoiceOut(ORMBase):
    id: int
    invoice_sr_no: int
    invoice_number: str
    branch: str
    invoice_date: date
    account_code: str
    from_date: date
    to_date: date
    status: InvoiceStatus

    total_awb: int
    basic_amount: Decimal
    discount_amount: Decimal
    misc_amount: Decimal
    fuel_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    taxable_amount: Decimal
    raw_total: Decimal
    round_off: Decimal
    grand_total: Decimal

    created_by: Optional[str]
    created_at: datetime
    cancelled_at: Optional[datetime]
    cancel_reason: Optional[str]

    lines: List[InvoiceLineOut]


class InvoiceListItem(ORMBase):
    id: int
    invoice_sr_no: int
    invoice_number: str
    account_code: str
    invoice_date: date
    total_awb: int
    grand_total: Decimal
    status: InvoiceStatus


class InvoiceListData(BaseModel):
    total: int
    items: List[InvoiceListItem]
