from sqlalchemy import Column, Integer, String, Enum, Index
from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.lock_entity import LockEntity


class LockTransition(Base, TimestampMixin):
    """Who moved a bag, club or shipment between lock states, and when. APPEND-ONLY."""

    __tablename__ = "lock_transitions"

    id = Column(Integer, primary_key=True)
    entity = Column(Enum(LockEntity), nullable=False)
    reference = Column(String(50), nullable=False)
    from_state = Column(String(30), nullable=False)
    to_state = Column(String(30), nullable=False)
    actor = Column(String(100), nullable=False)

    __table_args__ = (Index("ix_lock_transition_entity_ref", "entity", "reference"),)
