# app/services/billing/ledger_service.py
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func, case, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.constants.payment_types import SALE_PAYMENT, SALE_LIKE_PAYMENTS, RECEIPT_PAYMENTS
from app.core.exceptions import AppException, ConflictError, ValidationError
from app.models.billing.ledger_models import AccountLedger
from app.models.enums.ledger_entry_type import LedgerEntryType
from app.models.operations.shipment_models import Shipment
from app.schemas.billing.ledger_schemas import (
    ReceiptCreate,
    AdjustmentCreate,
    LedgerEntryOut,
    LedgerSummary,
    LedgerStatement,
    StatementRow,
)
from app.services.billing.credit_control_service import get_account, apply_balance_delta
from app.services.billing.sequence_service import next_receipt_no, peek_value, RECEIPT_SEQUENCE
from app.utils.activity_helpers import emit_activity
from app.utils.decimal_utils import to_decimal, ZERO

logger = logging.getLogger(__name__)


# =====================================================
# APPEND HELPERS (no commit; caller owns the transaction)
# =====================================================
def append_opening(db: AsyncSession, account_code: str, amount, actor: str, on: date) -> None:
    amount = to_decimal(amount)
    if amount == 0:
        return
    db.add(
        AccountLedger(
            account_code=account_code,
            entry_date=on,
            entry_type=LedgerEntryType.opening,
            payment="",
            debit_amount=amount if amount > 0 else ZERO,
            credit_amount=-amount if amount < 0 else ZERO,
            remarks="Opening balance",
            created_by=actor,
        )
    )


def append_sale(db: AsyncSession, shipment: Shipment, actor: str) -> None:
    db.add(
        AccountLedger(
            account_code=shipment.account_code,
            entry_date=shipment.shipment_date,
            entry_type=LedgerEntryType.sale,
            payment=SALE_PAYMENT,
            awb_no=shipment.awb_no,
            total_amt=to_decimal(shipment.total_amt),
            created_by=actor,
        )
    )


def append_correction(db: AsyncSession, shipment: Shipment, delta, actor: str, on: date, remarks: str | None = None) -> None:
    delta = to_decimal(delta)
    if delta == 0:
        return
    db.add(
        AccountLedger(
            account_code=shipment.account_code,
            entry_date=on,
            entry_type=LedgerEntryType.correction,
            payment=SALE_PAYMENT,
            awb_no=shipment.awb_no,
            total_amt=delta,
            remarks=remarks,
            created_by=actor,
        )
    )


# =====================================================
# SUMMARY
# =====================================================
def summarize(total_sales, total_payment, total_debit, total_credit, account_code: str) -> LedgerSummary:
    total_sales = to_decimal(total_sales)
    total_payment = to_decimal(total_payment)
    total_debit = to_decimal(total_debit)
    total_credit = to_decimal(total_credit)
    return LedgerSummary(
        account_code=account_code,
        total_sales=total_sales,
        total_payment=total_payment,
        total_debit=total_debit,
        total_credit=total_credit,
        outstanding=(total_sales + total_debit) - (total_payment + total_credit),
    )


def _summary_columns():
    sale_like = or_(
        AccountLedger.payment.in_(SALE_LIKE_PAYMENTS),
        AccountLedger.payment.is_(None),
    )
    # received amounts only count on rows that are not debit/credit adjustments
    plain_receipt = and_(
        AccountLedger.debit_amount == 0,
        AccountLedger.credit_amount == 0,
    )
    return (
        func.coalesce(func.sum(case((sale_like, AccountLedger.total_amt), else_=0)), 0),
        func.coalesce(func.sum(case((plain_receipt, AccountLedger.received_amount), else_=0)), 0),
        func.coalesce(func.sum(AccountLedger.debit_amount), 0),
        func.coalesce(func.sum(AccountLedger.credit_amount), 0),
    )


async def get_ledger_summary(db: AsyncSession, account_code: str) -> LedgerSummary:
    account = await get_account(db, account_code)
    row = (
        await db.execute(
            select(*_summary_columns()).where(AccountLedger.account_code == account.account_code)
        )
    ).one()
    return summarize(*row, account_code=account.account_code)


async def ledger_outstanding_by_account(db: AsyncSession) -> dict[str, Decimal]:
    rows = (
        await db.execute(
            select(AccountLedger.account_code, *_summary_columns()).group_by(AccountLedger.account_code)
        )
    ).all()
    return {
        r[0]: summarize(r[1], r[2], r[3], r[4], account_code=r[0]).outstanding
        for r in rows
    }


# =====================================================
# STATEMENT
# =====================================================
def _row_effect(entry: AccountLedger) -> Decimal:
    effect = to_decimal(entry.debit_amount) - to_decimal(entry.credit_amount)
    if entry.payment in SALE_LIKE_PAYMENTS or entry.payment is None:
        effect += to_decimal(entry.total_amt)
    if entry.debit_amount == 0 and entry.credit_amount == 0:
        effect -= to_decimal(entry.received_amount)
    return effect


async def get_statement(
    db: AsyncSession,
    account_code: str,
    *,
    from_date: date | None = None,
    to_date: date | None = None,
) -> LedgerStatement:
    account = await get_account(db, account_code)

    result = await db.execute(
        select(AccountLedger)
        .where(AccountLedger.account_code == account.account_code)
        .order_by(AccountLedger.entry_date, AccountLedger.id)
    )
    entries = result.scalars().all()

    opening = ZERO
    running = ZERO
    rows: list[StatementRow] = []
    for entry in entries:
        if to_date and entry.entry_date > to_date:
            break
        running += _row_effect(entry)
        if from_date and entry.entry_date < from_date:
            opening = running
            continue
        rows.append(
            StatementRow(
                entry=LedgerEntryOut.model_validate(entry),
                running_balance=running,
            )
        )

    return LedgerStatement(
        account_code=account.account_code,
        opening=opening,
        closing=running,
        rows=rows,
    )


# =====================================================
# RECEIPTS / ADJUSTMENTS
# =====================================================
async def record_receipt(db: AsyncSession, payload: ReceiptCreate, actor: str) -> LedgerEntryOut:
    if payload.payment not in RECEIPT_PAYMENTS:
        raise ValidationError(
            f"Unsupported receipt payment type: {payload.payment}",
            details={"allowed": list(RECEIPT_PAYMENTS)},
        )

    account = await get_account(db, payload.account_code)
    amount = to_decimal(payload.amount)

    try:
        receipt_no = await next_receipt_no(db)
        entry = AccountLedger(
            account_code=account.account_code,
            entry_date=payload.entry_date or date.today(),
            entry_type=LedgerEntryType.receipt,
            payment=payload.payment,
            receipt_no=receipt_no,
            reference=payload.reference,
            remarks=payload.remarks,
            received_amount=amount,
            created_by=actor,
        )
        db.add(entry)
        await apply_balance_delta(db, account.account_code, -amount)

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.RECORD_RECEIPT,
            reference=str(receipt_no),
            receipt_no=receipt_no,
            amount=amount,
            account_code=account.account_code,
        )

        await db.flush()
        await db.commit()
        await db.refresh(entry)

    except AppException:
        await db.rollback()
        raise

    except IntegrityError:
        await db.rollback()
        raise ConflictError("Receipt number already used", ErrorCode.CONFLICT)

    logger.info(
        "Receipt recorded",
        extra={"account_code": account.account_code, "receipt_no": receipt_no, "amount": str(amount)},
    )
    return LedgerEntryOut.model_validate(entry)


async def record_adjustment(db: AsyncSession, payload: AdjustmentCreate, actor: str) -> LedgerEntryOut:
    account = await get_account(db, payload.account_code)
    debit = to_decimal(payload.debit_amount)
    credit = to_decimal(payload.credit_amount)

    try:
        entry = AccountLedger(
            account_code=account.account_code,
            entry_date=payload.entry_date or date.today(),
            entry_type=LedgerEntryType.debit if debit > 0 else LedgerEntryType.credit,
            payment="",
            reference=payload.reference,
            remarks=payload.remarks,
            debit_amount=debit,
            credit_amount=credit,
            created_by=actor,
        )
        db.add(entry)
        await apply_balance_delta(db, account.account_code, debit - credit)

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.RECORD_ADJUSTMENT,
            reference=account.account_code,
            kind="debit" if debit > 0 else "credit",
            amount=debit or credit,
            account_code=account.account_code,
        )

        await db.flush()
        await db.commit()
        await db.refresh(entry)

    except AppException:
        await db.rollback()
        raise

    return LedgerEntryOut.model_validate(entry)


async def peek_next_receipt_no(db: AsyncSession) -> int:
    return await peek_value(db, RECEIPT_SEQUENCE) + 1
