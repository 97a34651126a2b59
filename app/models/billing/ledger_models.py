from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, Date, Enum, ForeignKey, Index
from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.ledger_entry_type import LedgerEntryType


class AccountLedger(Base, TimestampMixin):
    """One financial line per billable event. APPEND-ONLY.

    Sales and corrections carry ``total_amt``; receipts carry
    ``received_amount``; manual adjustments carry exactly one of
    ``debit_amount`` / ``credit_amount``.
    """

    __tablename__ = "account_ledger"

    id = Column(Integer, primary_key=True)
    account_code = Column(String(50), ForeignKey("customer_accounts.account_code", ondelete="RESTRICT"), nullable=False, index=True)
    entry_date = Column(Date, nullable=False)
    entry_type = Column(Enum(LedgerEntryType), nullable=False)
    payment = Column(String(30), nullable=False, default="")

    awb_no = Column(String(50), nullable=True, index=True)
    receipt_no = Column(Integer, nullable=True, unique=True)
    reference = Column(String(100), nullable=True)
    remarks = Column(String(500), nullable=True)

    total_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    received_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    debit_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    credit_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    created_by = Column(String(100), nullable=False)

    __table_args__ = (Index("ix_ledger_account_date", "account_code", "entry_date"),)

    def __repr__(self):
        return f"<AccountLedger {self.account_code} {self.entry_type} awb={self.awb_no}>"
