from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.operator import get_operator
from app.utils.response import success_response, APIResponse

from app.schemas.masters.customer_account_schemas import (
    CustomerAccountCreate,
    CreditLimitUpdate,
    CustomerAccountOut,
    CustomerAccountListData,
)
from app.services.masters.customer_account_service import (
    create_account,
    get_account_details,
    list_accounts,
    update_credit_limit,
)

router = APIRouter(
    prefix="/accounts",
    tags=["Customer Accounts"],
)


@router.post(
    "",
    response_model=APIResponse[CustomerAccountOut],
    status_code=201,
)
async def create_account_api(
    payload: CustomerAccountCreate,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    account = await create_account(db, payload, operator)
    return success_response("Account created successfully", account)


@router.get(
    "",
    response_model=APIResponse[CustomerAccountListData],
)
async def list_accounts_api(
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_accounts(db, page=page, page_size=page_size)
    return success_response("Accounts retrieved successfully", data)


@router.get(
    "/{account_code}",
    response_model=APIResponse[CustomerAccountOut],
)
async def get_account_api(
    account_code: str,
    db: AsyncSession = Depends(get_db),
):
    account = await get_account_details(db, account_code)
    return success_response("Account retrieved successfully", account)


@router.patch(
    "/{account_code}/credit-limit",
    response_model=APIResponse[CustomerAccountOut],
)
async def update_credit_limit_api(
    account_code: str,
    payload: CreditLimitUpdate,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    account = await update_credit_limit(db, account_code, payload, operator)
    return success_response("Credit limit updated successfully", account)
