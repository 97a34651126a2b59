from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.enums.club_status import ClubStatus


class ClubAttach(BaseModel):
    awb_no: str = Field(min_length=1)
    club_no: str = Field(min_length=1)


class ClubableCheck(BaseModel):
    awb_no: str
    clubbable: bool
    error_code: Optional[str] = None
    message: Optional[str] = None


class ClubOut(BaseModel):
    club_no: str
    status: ClubStatus
    is_locked: bool
    locked_at: Optional[datetime]
    locked_by: Optional[str]
    awb_nos: List[str]
