# app/services/billing/credit_control_service.py
"""Credit-limit hold evaluation and the account running balance.

Every booked shipment adds its ``total_amt`` to ``left_over_balance``, held
or not; a hold only stops the shipment from moving on. The balance is only
moved through ``apply_balance_delta`` and ``commit_shipment_amount``, both
single atomic UPDATE statements.
"""
import logging
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.error_codes import ErrorCode
from app.constants.payment_types import CREDIT_LIMIT_HOLD_REASON
from app.core.exceptions import NotFoundError
from app.models.masters.customer_account_models import CustomerAccount
from app.models.operations.hold_log_models import HoldLog
from app.models.operations.shipment_models import Shipment
from app.utils.decimal_utils import to_decimal

logger = logging.getLogger(__name__)

HOLD_ACTION = "Hold"
RELEASE_ACTION = "Hold Released"


def evaluate_hold(total_amt, left_over_balance, credit_limit) -> tuple[bool, str | None]:
    """Pure check: would adding ``total_amt`` push the balance past the limit?"""
    hypothetical = to_decimal(left_over_balance) + to_decimal(total_amt)
    if hypothetical > to_decimal(credit_limit):
        return True, CREDIT_LIMIT_HOLD_REASON
    return False, None


def evaluate_shipment_hold(shipment: Shipment, account: CustomerAccount) -> tuple[bool, str | None]:
    # a booked shipment is already inside the balance; don't count it twice
    base = to_decimal(account.left_over_balance) - to_decimal(shipment.total_amt)
    return evaluate_hold(shipment.total_amt, base, account.credit_limit)


async def get_account(db: AsyncSession, account_code: str, *, for_update: bool = False) -> CustomerAccount:
    stmt = select(CustomerAccount).where(
        CustomerAccount.account_code == account_code.strip().upper(),
        CustomerAccount.is_active.is_(True),
    ).execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()

    account = (await db.execute(stmt)).scalar_one_or_none()
    if not account:
        raise NotFoundError("Customer account not found", ErrorCode.ACCOUNT_NOT_FOUND)
    return account


async def apply_balance_delta(db: AsyncSession, account_code: str, delta) -> Decimal:
    """Atomically add a signed delta to the running balance."""
    delta = to_decimal(delta)
    result = await db.execute(
        update(CustomerAccount)
        .where(CustomerAccount.account_code == account_code)
        .values(left_over_balance=CustomerAccount.left_over_balance + delta)
        .returning(CustomerAccount.left_over_balance)
        .execution_options(synchronize_session=False)
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError("Customer account not found", ErrorCode.ACCOUNT_NOT_FOUND)

    logger.info(
        "Balance delta applied",
        extra={"account_code": account_code, "delta": str(delta), "balance": str(balance)},
    )
    return to_decimal(balance)


async def commit_shipment_amount(db: AsyncSession, account_code: str, amount) -> tuple[Decimal, Decimal]:
    """Add a booked shipment's amount to the balance.

    One UPDATE ... RETURNING, so concurrent bookings for one account each see
    the balance including every earlier booking. Returns the new balance and
    the credit limit it has to be checked against.
    """
    amount = to_decimal(amount)
    result = await db.execute(
        update(CustomerAccount)
        .where(CustomerAccount.account_code == account_code)
        .values(left_over_balance=CustomerAccount.left_over_balance + amount)
        .returning(CustomerAccount.left_over_balance, CustomerAccount.credit_limit)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Customer account not found", ErrorCode.ACCOUNT_NOT_FOUND)

    balance, credit_limit = to_decimal(row[0]), to_decimal(row[1])
    logger.info(
        "Shipment amount committed",
        extra={"account_code": account_code, "amount": str(amount), "balance": str(balance)},
    )
    return balance, credit_limit


def log_hold(db: AsyncSession, shipment: Shipment, action: str, actor: str, balance=None) -> None:
    db.add(
        HoldLog(
            awb_no=shipment.awb_no,
            account_code=shipment.account_code,
            action=action,
            reason=shipment.hold_reason if action == HOLD_ACTION else None,
            total_amt=shipment.total_amt,
            balance_snapshot=to_decimal(balance) if balance is not None else None,
            actor=actor,
        )
    )


def place_on_hold(db: AsyncSession, shipment: Shipment, reason: str, actor: str, balance=None) -> None:
    shipment.is_hold = True
    shipment.hold_reason = reason
    log_hold(db, shipment, HOLD_ACTION, actor, balance)
    logger.info("Shipment on hold", extra={"awb_no": shipment.awb_no, "reason": reason})


def release_from_hold(db: AsyncSession, shipment: Shipment, actor: str) -> bool:
    """Clear a hold unconditionally. Returns whether the shipment was held."""
    if not shipment.is_hold:
        return False
    shipment.is_hold = False
    shipment.hold_reason = None
    log_hold(db, shipment, RELEASE_ACTION, actor)
    logger.info("Shipment released from hold", extra={"awb_no": shipment.awb_no})
    return True
