from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime

from app.schemas.common import ORMBase


class RunCreate(BaseModel):
    run_no: str = Field(min_length=1, max_length=50)
    flight_no: Optional[str] = None
    flight_date: Optional[date] = None
    airline: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None


class RunStatusUpdate(BaseModel):
    status: str
    remarks: Optional[str] = None


class RunStatusEntryOut(ORMBase):
    step: int
    status: str
    remarks: Optional[str]
    actor: str
    created_at: datetime


class RunOut(ORMBase):
    id: int
    run_no: str
    flight_no: Optional[str]
    flight_date: Optional[date]
    airline: Optional[str]
    origin: Optional[str]
    destination: Optional[str]
    status_step: int
    status: str
    created_at: datetime
    status_history: List[RunStatusEntryOut] = []


class RunBagSummary(BaseModel):
    bag_no: str
    is_final: bool
    no_of_awb: int
    bag_weight: Decimal
    chargeable_weight: Decimal


class RunSummary(BaseModel):
    run_no: str
    status: str
    no_of_bags: int
    no_of_awb: int
    run_weight: Decimal
    chargeable_weight: Decimal
    all_bags_final: bool
    bags: List[RunBagSummary]
