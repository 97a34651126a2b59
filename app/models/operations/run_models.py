from sqlalchemy import Column, Integer, String, Date, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin


class Run(Base, TimestampMixin, AuditMixin):
    __tablename__ = "runs"

    id = Column(Integer, primary_key=True)
    run_no = Column(String(50), nullable=False, unique=True, index=True)

    flight_no = Column(String(30), nullable=True)
    flight_date = Column(Date, nullable=True)
    airline = Column(String(100), nullable=True)
    origin = Column(String(50), nullable=True)
    destination = Column(String(50), nullable=True)

    status_step = Column(Integer, nullable=False, default=0)
    status = Column(String(50), nullable=False, default="Run Created")

    bags = relationship("Bag", back_populates="run", lazy="selectin", order_by="Bag.id")
    status_history = relationship(
        "RunStatusEntry",
        back_populates="run",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RunStatusEntry.id",
    )

    def __repr__(self):
        return f"<Run {self.run_no} status={self.status}>"


class RunStatusEntry(Base, TimestampMixin):
    """Append-only history of run milestones."""

    __tablename__ = "run_status_entries"

    id = Column(Integer, primary_key=True)
    run_id = Column(Integer, ForeignKey("runs.id", ondelete="CASCADE"), nullable=False, index=True)
    step = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False)
    remarks = Column(String(500), nullable=True)
    actor = Column(String(100), nullable=False)

    run = relationship("Run", back_populates="status_history")

    __table_args__ = (Index("ix_run_status_run_step", "run_id", "step"),)
