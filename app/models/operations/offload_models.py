from sqlalchemy import Column, Integer, String, Boolean, Enum, Index
from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.offload_type import OffloadType


class OffloadRecord(Base, TimestampMixin):
    """Historical record of a shipment taken off its run. Never updated."""

    __tablename__ = "offload_records"

    id = Column(Integer, primary_key=True)
    awb_no = Column(String(50), nullable=False, index=True)
    account_code = Column(String(50), nullable=False)
    run_no = Column(String(50), nullable=False, index=True)
    bag_no = Column(String(50), nullable=True)

    offload_type = Column(Enum(OffloadType), nullable=False)
    reason = Column(String(500), nullable=False)
    alert_customer = Column(Boolean, nullable=False, default=False)
    actor = Column(String(100), nullable=False)

    __table_args__ = (Index("ix_offload_run_awb", "run_no", "awb_no"),)
