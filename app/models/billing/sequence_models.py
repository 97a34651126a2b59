from sqlalchemy import Column, String, BigInteger
from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class SequenceCounter(Base, TimestampMixin):
    """Single counter row per document series; ``value`` is the last number issued."""

    __tablename__ = "sequence_counters"

    name = Column(String(50), primary_key=True)
    value = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<SequenceCounter {self.name}={self.value}>"
