from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from app.models.enums.bag_status import BagStatus
from app.schemas.common import ORMBase


class BagAssign(BaseModel):
    awb_no: str = Field(min_length=1)
    bag_no: str = Field(min_length=1)
    run_no: str = Field(min_length=1)
    # defaults to the shipment's chargeable weight
    weight: Optional[Decimal] = Field(default=None, ge=0)


class BagRowOut(ORMBase):
    awb_no: str
    run_no: str
    weight: Decimal
    chargeable_weight: Decimal
    added_by: str
    created_at: datetime


class BagOut(BaseModel):
    bag_no: str
    run_no: str
    status: BagStatus
    is_final: bool
    finalized_at: Optional[datetime]
    finalized_by: Optional[str]
    no_of_awb: int
    bag_weight: Decimal
    chargeable_weight: Decimal
    rows: List[BagRowOut]
