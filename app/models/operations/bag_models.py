from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.bag_status import BagStatus


class Bag(Base, TimestampMixin, AuditMixin):
    __tablename__ = "bags"

    id = Column(Integer, primary_key=True)
    bag_no = Column(String(50), nullable=False, unique=True, index=True)
    run_no = Column(String(50), ForeignKey("runs.run_no", ondelete="RESTRICT"), nullable=False, index=True)

    status = Column(Enum(BagStatus), nullable=False, default=BagStatus.open, index=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)
    finalized_by = Column(String(100), nullable=True)
    # totals as they stood at finalize; later offloads do not change them
    final_no_of_awb = Column(Integer, nullable=True)
    final_weight = Column(Numeric(10, 3), nullable=True)
    final_chargeable_weight = Column(Numeric(10, 3), nullable=True)
    remarks = Column(String(500), nullable=True)

    run = relationship("Run", back_populates="bags")
    rows = relationship(
        "BagRow",
        back_populates="bag",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BagRow.id",
    )

    @property
    def is_final(self) -> bool:
        return self.status == BagStatus.finalized

    def __repr__(self):
        return f"<Bag {self.bag_no} run={self.run_no} status={self.status}>"


class BagRow(Base, TimestampMixin):
    __tablename__ = "bag_rows"

    id = Column(Integer, primary_key=True)
    bag_id = Column(Integer, ForeignKey("bags.id", ondelete="CASCADE"), nullable=False, index=True)
    awb_no = Column(String(50), ForeignKey("shipments.awb_no", ondelete="RESTRICT"), nullable=False, index=True)
    run_no = Column(String(50), nullable=False, index=True)

    weight = Column(Numeric(10, 3), nullable=False, default=Decimal("0.000"))
    chargeable_weight = Column(Numeric(10, 3), nullable=False, default=Decimal("0.000"))

    # offloaded rows stay as history and no longer count as bag membership
    offloaded_at = Column(DateTime(timezone=True), nullable=True)
    added_by = Column(String(100), nullable=False)

    bag = relationship("Bag", back_populates="rows")

    __table_args__ = (
        Index(
            "uq_bag_row_active_awb",
            "awb_no",
            unique=True,
            sqlite_where=text("offloaded_at IS NULL"),
            postgresql_where=text("offloaded_at IS NULL"),
        ),
    )
