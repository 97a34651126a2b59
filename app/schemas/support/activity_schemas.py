# app/schemas/support/activity_schemas.py

from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from fastapi import Query


class ActivityFilters(BaseModel):
    actor: Optional[str] = Query(None)
    code: Optional[str] = Query(None)
    reference: Optional[str] = Query(None)

    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)

    sort_order: str = Query("desc")


class ActivityOut(BaseModel):
    id: int
    actor: str
    code: str
    reference: Optional[str]
    message: str
    created_at: datetime

    class Config:
        from_attributes = True


class ActivityListData(BaseModel):
    total: int
    items: List[ActivityOut]
