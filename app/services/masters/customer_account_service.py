import logging
from datetime import date

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.config import DEFAULT_BRANCH
from app.core.exceptions import ConflictError
from app.models.masters.customer_account_models import CustomerAccount
from app.schemas.masters.customer_account_schemas import (
    CustomerAccountCreate,
    CreditLimitUpdate,
    CustomerAccountOut,
    CustomerAccountListData,
)
from app.services.billing.credit_control_service import get_account
from app.services.billing.ledger_service import append_opening
from app.utils.activity_helpers import emit_activity
from app.utils.decimal_utils import to_decimal

logger = logging.getLogger(__name__)


def _map_account(account: CustomerAccount) -> CustomerAccountOut:
    return CustomerAccountOut(
        id=account.id,
        account_code=account.account_code,
        name=account.name,
        email=account.email,
        branch=account.branch,
        credit_limit=account.credit_limit,
        opening_balance=account.opening_balance,
        left_over_balance=account.left_over_balance,
        available_credit=to_decimal(account.credit_limit) - to_decimal(account.left_over_balance),
        is_active=account.is_active,
        created_by=account.created_by,
        created_at=account.created_at,
    )


async def create_account(db: AsyncSession, payload: CustomerAccountCreate, actor: str) -> CustomerAccountOut:
    code = payload.account_code.strip().upper()
    opening = to_decimal(payload.opening_balance)

    account = CustomerAccount(
        account_code=code,
        name=payload.name.strip(),
        email=payload.email,
        branch=(payload.branch or DEFAULT_BRANCH).strip().upper(),
        credit_limit=to_decimal(payload.credit_limit),
        opening_balance=opening,
        left_over_balance=opening,
        created_by=actor,
        updated_by=actor,
    )

    try:
        db.add(account)
        await db.flush()

        append_opening(db, code, opening, actor, date.today())

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.CREATE_ACCOUNT,
            reference=code,
            account_code=code,
            credit_limit=account.credit_limit,
        )

        await db.commit()

    except IntegrityError:
        await db.rollback()
        raise ConflictError("Account code already exists", ErrorCode.ACCOUNT_CODE_EXISTS)

    await db.refresh(account)
    logger.info("Customer account created", extra={"account_code": code})
    return _map_account(account)


async def get_account_details(db: AsyncSession, account_code: str) -> CustomerAccountOut:
    account = await get_account(db, account_code)
    await db.refresh(account)
    return _map_account(account)


async def list_accounts(db: AsyncSession, *, page: int = 1, page_size: int = 20) -> CustomerAccountListData:
    total = await db.scalar(
        select(func.count(CustomerAccount.id)).where(CustomerAccount.is_active.is_(True))
    )
    result = await db.execute(
        select(CustomerAccount)
        .where(CustomerAccount.is_active.is_(True))
        .order_by(CustomerAccount.account_code)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return CustomerAccountListData(
        total=total or 0,
        items=[_map_account(a) for a in result.scalars().all()],
    )


async def update_credit_limit(
    db: AsyncSession,
    account_code: str,
    payload: CreditLimitUpdate,
    actor: str,
) -> CustomerAccountOut:
    account = await get_account(db, account_code, for_update=True)
    old_limit = account.credit_limit

    account.credit_limit = to_decimal(payload.credit_limit)
    account.updated_by = actor

    await emit_activity(
        db,
        actor=actor,
        code=ActivityCode.UPDATE_CREDIT_LIMIT,
        reference=account.account_code,
        account_code=account.account_code,
        old_value=old_limit,
        new_value=account.credit_limit,
    )

    await db.commit()
    await db.refresh(account)
    return _map_account(account)
