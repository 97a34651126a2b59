from sqlalchemy import Column, Integer, String, Index
from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class ActivityLog(Base, TimestampMixin):
    """Immutable audit log. APPEND-ONLY. Never updated, never deleted."""

    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True)
    actor = Column(String(100), nullable=False, index=True)
    code = Column(String(50), nullable=False, index=True)
    reference = Column(String(50), nullable=True, index=True)
    message = Column(String, nullable=False)

    __table_args__ = (Index("ix_activity_actor_created", "actor", "created_at"),)

    def __repr__(self):
        return f"<ActivityLog id={self.id} actor={self.actor} code={self.code}>"
