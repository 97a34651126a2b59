from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.enums.offload_type import OffloadType
from app.schemas.common import ORMBase


class AwbOffloadRequest(BaseModel):
    awb_no: str = Field(min_length=1)
    reason: str = Field(min_length=1)
    alert_customer: bool = False


class RunOffloadRequest(BaseModel):
    run_no: str = Field(min_length=1)
    reason: str = Field(min_length=1)
    # empty means every shipment currently on the run
    awb_nos: Optional[List[str]] = None
    alert_customer: bool = False


class OffloadRecordOut(ORMBase):
    id: int
    awb_no: str
    account_code: str
    run_no: str
    bag_no: Optional[str]
    offload_type: OffloadType
    reason: str
    alert_customer: bool
    actor: str
    created_at: datetime
