# app/schemas/masters/customer_account_schemas.py

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from app.schemas.common import ORMBase


class CustomerAccountCreate(BaseModel):
    account_code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    branch: Optional[str] = None
    credit_limit: Decimal = Field(ge=0)
    opening_balance: Decimal = Decimal("0.00")


class CreditLimitUpdate(BaseModel):
    credit_limit: Decimal = Field(ge=0)


class CustomerAccountOut(ORMBase):
    id: int
    account_code: str
    name: str
    email: Optional[str]
    branch: str
    credit_limit: Decimal
    opening_balance: Decimal
    left_over_balance: Decimal
    available_credit: Decimal
    is_active: bool

    created_by: Optional[str]
    created_at: datetime


class CustomerAccountListData(BaseModel):
    total: int
    items: List[CustomerAccountOut]
