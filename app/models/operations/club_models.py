from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, SoftDeleteMixin, AuditMixin
from app.models.enums.club_status import ClubStatus


class Club(Base, TimestampMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "clubs"

    id = Column(Integer, primary_key=True)
    club_no = Column(String(50), nullable=False, unique=True, index=True)

    status = Column(Enum(ClubStatus), nullable=False, default=ClubStatus.open, index=True)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    locked_by = Column(String(100), nullable=True)
    remarks = Column(String(500), nullable=True)

    rows = relationship(
        "ClubRow",
        back_populates="club",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ClubRow.id",
    )

    @property
    def is_locked(self) -> bool:
        return self.status == ClubStatus.locked

    def __repr__(self):
        return f"<Club {self.club_no} status={self.status}>"


class ClubRow(Base, TimestampMixin):
    __tablename__ = "club_rows"

    id = Column(Integer, primary_key=True)
    club_id = Column(Integer, ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False, index=True)
    # a shipment belongs to at most one club
    awb_no = Column(String(50), ForeignKey("shipments.awb_no", ondelete="RESTRICT"), nullable=False, unique=True)
    added_by = Column(String(100), nullable=False)

    club = relationship("Club", back_populates="rows")
