from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin


class Manifest(Base, TimestampMixin, AuditMixin):
    __tablename__ = "manifests"

    id = Column(Integer, primary_key=True)
    manifest_no = Column(String(50), nullable=False, unique=True, index=True)
    run_no = Column(String(50), ForeignKey("runs.run_no", ondelete="RESTRICT"), nullable=False, unique=True)

    no_of_bags = Column(Integer, nullable=False, default=0)
    no_of_awb = Column(Integer, nullable=False, default=0)
    total_weight = Column(Numeric(12, 3), nullable=False, default=Decimal("0.000"))

    def __repr__(self):
        return f"<Manifest {self.manifest_no} run={self.run_no}>"
