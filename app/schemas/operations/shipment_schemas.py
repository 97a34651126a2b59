from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime

from app.models.enums.shipment_status import ShipmentStatus
from app.schemas.common import ORMBase


# =====================================================
# AMOUNTS (tariffed upstream)
# =====================================================
class ShipmentAmounts(BaseModel):
    basic_amt: Decimal = Field(ge=0)
    discount_amt: Decimal = Field(default=Decimal("0.00"), ge=0)
    misc_amt: Decimal = Field(default=Decimal("0.00"), ge=0)
    fuel_amt: Decimal = Field(default=Decimal("0.00"), ge=0)
    cgst_amt: Decimal = Field(default=Decimal("0.00"), ge=0)
    sgst_amt: Decimal = Field(default=Decimal("0.00"), ge=0)
    igst_amt: Decimal = Field(default=Decimal("0.00"), ge=0)


# =====================================================
# CREATE / UPDATE
# =====================================================
class ShipmentCreate(ShipmentAmounts):
    awb_no: str = Field(min_length=1, max_length=50)
    account_code: str
    shipment_date: date
    sector: Optional[str] = None
    service: Optional[str] = None
    destination: Optional[str] = None
    consignee_name: Optional[str] = None
    payment: str = "Credit"
    pcs: int = Field(default=1, gt=0)
    actual_weight: Decimal = Field(default=Decimal("0.000"), ge=0)
    volumetric_weight: Decimal = Field(default=Decimal("0.000"), ge=0)


class ShipmentTotalCorrection(ShipmentAmounts):
    remarks: Optional[str] = None


class DataLockRequest(BaseModel):
    """Either one AWB or an account/date range."""

    locked: bool = True
    awb_no: Optional[str] = None
    account_code: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self):
        if self.awb_no:
            return self
        if not (self.from_date and self.to_date):
            raise ValueError("awb_no or from_date/to_date is required")
        if self.from_date > self.to_date:
            raise ValueError("from_date must be on or before to_date")
        return self


# =====================================================
# OUTPUT
# =====================================================
class ShipmentOut(ORMBase):
    id: int
    awb_no: str
    account_code: str
    shipment_date: date
    sector: Optional[str]
    service: Optional[str]
    destination: Optional[str]
    consignee_name: Optional[str]
    payment: str

    pcs: int
    actual_weight: Decimal
    volumetric_weight: Decimal

    basic_amt: Decimal
    discount_amt: Decimal
    misc_amt: Decimal
    fuel_amt: Decimal
    cgst_amt: Decimal
    sgst_amt: Decimal
    igst_amt: Decimal
    total_amt: Decimal

    is_hold: bool
    hold_reason: Optional[str]
    complete_data_lock: bool
    billing_locked: bool
    is_billed: bool
    invoice_number: Optional[str]

    status: ShipmentStatus
    run_no: Optional[str]
    bag_no: Optional[str]
    club_no: Optional[str]
    manifest_no: Optional[str]

    created_at: datetime
    updated_at: Optional[datetime]


class ShipmentListData(BaseModel):
    total: int
    items: List[ShipmentOut]


class HoldEvaluation(BaseModel):
    awb_no: str
    is_hold: bool
    hold_reason: Optional[str]
    left_over_balance: Decimal
    credit_limit: Decimal
    hypothetical_balance: Decimal


class DataLockResult(BaseModel):
    locked: bool
    count: int
