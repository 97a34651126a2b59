from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime

from app.models.enums.ledger_entry_type import LedgerEntryType
from app.schemas.common import ORMBase


class ReceiptCreate(BaseModel):
    account_code: str
    amount: Decimal = Field(gt=0)
    payment: str
    entry_date: Optional[date] = None
    reference: Optional[str] = None
    remarks: Optional[str] = None


class AdjustmentCreate(BaseModel):
    """Manual debit (raises outstanding) or credit (lowers it)."""

    account_code: str
    debit_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    credit_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    entry_date: Optional[date] = None
    reference: Optional[str] = None
    remarks: Optional[str] = None

    @model_validator(mode="after")
    def one_side_only(self):
        if (self.debit_amount > 0) == (self.credit_amount > 0):
            raise ValueError("exactly one of debit_amount or credit_amount must be positive")
        return self


class LedgerEntryOut(ORMBase):
    id: int
    account_code: str
    entry_date: date
    entry_type: LedgerEntryType
    payment: str
    awb_no: Optional[str]
    receipt_no: Optional[int]
    reference: Optional[str]
    remarks: Optional[str]
    total_amt: Decimal
    received_amount: Decimal
    debit_amount: Decimal
    credit_amount: Decimal
    created_by: str
    created_at: datetime


class LedgerSummary(BaseModel):
    account_code: str
    total_sales: Decimal
    total_payment: Decimal
    total_debit: Decimal
    total_credit: Decimal
    outstanding: Decimal


class StatementRow(BaseModel):
    entry: LedgerEntryOut
    running_balance: Decimal


class LedgerStatement(BaseModel):
    account_code: str
    opening: Decimal
    closing: Decimal
    rows: List[StatementRow]


class BalanceDrift(BaseModel):
    account_code: str
    left_over_balance: Decimal
    ledger_outstanding: Decimal
    difference: Decimal


class BillingMismatch(BaseModel):
    awb_no: str
    invoice_number: Optional[str]
    matching_lines: int


class ReconciliationReport(BaseModel):
    ok: bool
    checked_accounts: int
    checked_billed_shipments: int
    balance_drifts: List[BalanceDrift]
    billing_mismatches: List[BillingMismatch]