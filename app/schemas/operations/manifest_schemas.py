from pydantic import BaseModel
from typing import List
from decimal import Decimal
from datetime import datetime


class ManifestOut(BaseModel):
    manifest_no: str
    run_no: str
    no_of_bags: int
    no_of_awb: int
    total_weight: Decimal
    awb_nos: List[str]
    created_by: str | None
    created_at: datetime
