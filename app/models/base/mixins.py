from sqlalchemy import Column, Boolean, DateTime, String
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func


class TimestampMixin:
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        onupdate=func.now()
    )


class SoftDeleteMixin:
    is_deleted = Column(Boolean, default=False, nullable=False)


class AuditMixin:
    """Operator names as sent in X-Operator; there is no user table."""

    @declared_attr
    def created_by(cls):
        return Column(String(100), nullable=True, index=True)

    @declared_attr
    def updated_by(cls):
        return Column(String(100), nullable=True)
