from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric
from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class HoldLog(Base, TimestampMixin):
    __tablename__ = "hold_logs"

    id = Column(Integer, primary_key=True)
    awb_no = Column(String(50), nullable=False, index=True)
    account_code = Column(String(50), nullable=False, index=True)
    action = Column(String(30), nullable=False)  # "Hold" | "Hold Released"
    reason = Column(String(100), nullable=True)
    total_amt = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    balance_snapshot = Column(Numeric(14, 2), nullable=True)
    actor = Column(String(100), nullable=False)
