from decimal import Decimal
from sqlalchemy import Column, Integer, String, Boolean, Numeric, Index, CheckConstraint
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin


class CustomerAccount(Base, TimestampMixin, AuditMixin):
    """Billing account of a customer.

    ``left_over_balance`` is the running outstanding amount. It is only ever
    moved by signed deltas issued as atomic UPDATE statements, never recomputed.
    """

    __tablename__ = "customer_accounts"

    id = Column(Integer, primary_key=True)
    account_code = Column(String(50), nullable=False, unique=True, index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    branch = Column(String(20), nullable=False)

    credit_limit = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    opening_balance = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    left_over_balance = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_customer_account_active", "is_active"),
        CheckConstraint("credit_limit >= 0", name="ck_customer_account_credit_limit"),
    )

    def __repr__(self):
        return f"<CustomerAccount {self.account_code} balance={self.left_over_balance}>"
