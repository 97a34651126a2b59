# app/services/operations/shipment_service.py
import logging
from datetime import date

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.constants.payment_types import CREDIT_LIMIT_HOLD_REASON
from app.core.exceptions import AppException, ConflictError, NotFoundError, DegradedError
from app.models.enums.lock_entity import LockEntity
from app.models.enums.shipment_status import ShipmentStatus
from app.models.operations.shipment_models import Shipment
from app.schemas.operations.shipment_schemas import (
    ShipmentCreate,
    ShipmentAmounts,
    ShipmentTotalCorrection,
    ShipmentOut,
    ShipmentListData,
    HoldEvaluation,
    DataLockRequest,
    DataLockResult,
)
from app.services.billing.credit_control_service import (
    get_account,
    evaluate_shipment_hold,
    evaluate_hold,
    commit_shipment_amount,
    apply_balance_delta,
    place_on_hold,
    release_from_hold,
)
from app.services.billing.ledger_service import append_sale, append_correction
from app.services.external.notification_service import NotificationDispatcher, notify_safely
from app.services.external.rate_engine import RateEngine, default_rate_engine
from app.utils.activity_helpers import emit_activity
from app.utils.decimal_utils import to_decimal, to_weight, compute_total
from app.utils.lock_helpers import record_lock_transition
from app.utils.normalize import normalize_ref
from app.utils.weights import chargeable_weight

logger = logging.getLogger(__name__)

AMOUNT_FIELDS = (
    "basic_amt",
    "discount_amt",
    "misc_amt",
    "fuel_amt",
    "cgst_amt",
    "sgst_amt",
    "igst_amt",
)


async def get_shipment(db: AsyncSession, awb_no: str, *, for_update: bool = False) -> Shipment:
    stmt = select(Shipment).where(Shipment.awb_no == normalize_ref(awb_no)).execution_options(
        populate_existing=True
    )
    if for_update:
        stmt = stmt.with_for_update()
    shipment = (await db.execute(stmt)).scalar_one_or_none()
    if not shipment:
        raise NotFoundError("Shipment not found", ErrorCode.SHIPMENT_NOT_FOUND)
    return shipment


async def _to_out(db: AsyncSession, shipment: Shipment) -> ShipmentOut:
    await db.refresh(shipment)
    return ShipmentOut.model_validate(shipment)


def _hold_context(shipment: Shipment) -> dict:
    return {
        "awb_no": shipment.awb_no,
        "account_code": shipment.account_code,
        "total_amt": str(shipment.total_amt),
        "reason": shipment.hold_reason,
    }


def ensure_editable(shipment: Shipment) -> None:
    if shipment.complete_data_lock:
        raise ConflictError("Shipment data is locked", ErrorCode.SHIPMENT_LOCKED)
    if shipment.is_billed:
        raise ConflictError("Shipment is already billed", ErrorCode.ALREADY_BILLED)
    if shipment.billing_locked:
        raise ConflictError("Shipment is locked for billing", ErrorCode.SHIPMENT_LOCKED)


# =====================================================
# BOOKING
# =====================================================
async def book_shipment(
    db: AsyncSession,
    payload: ShipmentCreate,
    actor: str,
    *,
    notifier: NotificationDispatcher | None = None,
) -> tuple[ShipmentOut, list[str]]:
    account = await get_account(db, payload.account_code)
    awb_no = normalize_ref(payload.awb_no)

    exists = await db.scalar(select(Shipment.id).where(Shipment.awb_no == awb_no))
    if exists:
        raise ConflictError("AWB already booked", ErrorCode.SHIPMENT_EXISTS)

    amounts = {f: to_decimal(getattr(payload, f)) for f in AMOUNT_FIELDS}
    total = compute_total(*amounts.values())

    shipment = Shipment(
        awb_no=awb_no,
        account_code=account.account_code,
        shipment_date=payload.shipment_date,
        sector=payload.sector,
        service=payload.service,
        destination=payload.destination,
        consignee_name=payload.consignee_name,
        payment=payload.payment,
        pcs=payload.pcs,
        actual_weight=to_weight(payload.actual_weight),
        volumetric_weight=to_weight(payload.volumetric_weight),
        total_amt=total,
        status=ShipmentStatus.unassigned,
        created_by=actor,
        updated_by=actor,
        **amounts,
    )

    try:
        db.add(shipment)
        await db.flush()

        # -------------------------
        # Commit amount, then credit check against the balance it produced
        # -------------------------
        balance, credit_limit = await commit_shipment_amount(db, account.account_code, total)
        append_sale(db, shipment, actor)

        is_hold, reason = evaluate_hold(total, balance - total, credit_limit)
        if is_hold:
            place_on_hold(db, shipment, reason, actor, balance)
            await emit_activity(
                db,
                actor=actor,
                code=ActivityCode.HOLD_SHIPMENT,
                reference=awb_no,
                awb_no=awb_no,
                reason=reason,
            )

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.BOOK_SHIPMENT,
            reference=awb_no,
            awb_no=awb_no,
            account_code=account.account_code,
            total_amt=total,
        )

        await db.commit()

    except IntegrityError:
        await db.rollback()
        raise ConflictError("AWB already booked", ErrorCode.SHIPMENT_EXISTS)

    logger.info(
        "Shipment booked",
        extra={"awb_no": awb_no, "account_code": account.account_code, "is_hold": shipment.is_hold},
    )

    warnings: list[str] = []
    if shipment.is_hold:
        warnings += await notify_safely(notifier, "shipment.hold", _hold_context(shipment))

    return await _to_out(db, shipment), warnings


async def get_shipment_details(db: AsyncSession, awb_no: str) -> ShipmentOut:
    shipment = await get_shipment(db, awb_no)
    return await _to_out(db, shipment)


async def list_shipments(
    db: AsyncSession,
    *,
    account_code: str | None = None,
    status: ShipmentStatus | None = None,
    run_no: str | None = None,
    is_hold: bool | None = None,
    page: int = 1,
    page_size: int = 20,
) -> ShipmentListData:
    filters = []
    if account_code:
        filters.append(Shipment.account_code == normalize_ref(account_code))
    if status:
        filters.append(Shipment.status == status)
    if run_no:
        filters.append(Shipment.run_no == normalize_ref(run_no))
    if is_hold is not None:
        filters.append(Shipment.is_hold.is_(is_hold))

    total = await db.scalar(select(func.count(Shipment.id)).where(*filters))
    result = await db.execute(
        select(Shipment)
        .where(*filters)
        .order_by(Shipment.shipment_date.desc(), Shipment.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return ShipmentListData(
        total=total or 0,
        items=[ShipmentOut.model_validate(s) for s in result.scalars().all()],
    )


# =====================================================
# HOLD EVALUATION
# =====================================================
async def evaluate_hold_for(db: AsyncSession, awb_no: str) -> HoldEvaluation:
    """Read-only: what the credit check says for this shipment right now."""
    shipment = await get_shipment(db, awb_no)
    account = await get_account(db, shipment.account_code)
    await db.refresh(account)

    is_hold, reason = evaluate_shipment_hold(shipment, account)
    return HoldEvaluation(
        awb_no=shipment.awb_no,
        is_hold=is_hold,
        hold_reason=reason,
        left_over_balance=account.left_over_balance,
        credit_limit=account.credit_limit,
        # the shipment's amount is already part of the balance
        hypothetical_balance=to_decimal(account.left_over_balance),
    )


async def reevaluate_hold(db: AsyncSession, awb_no: str, actor: str) -> ShipmentOut:
    """Release a credit-limit hold once the balance is back within the limit.

    The held amount is already in the balance, so nothing is added here.
    """
    shipment = await get_shipment(db, awb_no, for_update=True)
    if not shipment.is_hold or shipment.hold_reason != CREDIT_LIMIT_HOLD_REASON:
        return await _to_out(db, shipment)

    try:
        account = await get_account(db, shipment.account_code, for_update=True)
        still_held, _ = evaluate_shipment_hold(shipment, account)
        if still_held:
            await db.rollback()
            return await _to_out(db, shipment)

        release_from_hold(db, shipment, actor)
        shipment.updated_by = actor

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.RELEASE_HOLD,
            reference=shipment.awb_no,
            awb_no=shipment.awb_no,
        )
        await db.commit()

    except AppException:
        await db.rollback()
        raise

    return await _to_out(db, shipment)


# =====================================================
# TOTAL CORRECTION
# =====================================================
async def _apply_correction(
    db: AsyncSession,
    shipment: Shipment,
    amounts: ShipmentAmounts,
    actor: str,
    remarks: str | None,
) -> None:
    old_total = to_decimal(shipment.total_amt)

    for field in AMOUNT_FIELDS:
        setattr(shipment, field, to_decimal(getattr(amounts, field)))
    shipment.total_amt = compute_total(*(getattr(shipment, f) for f in AMOUNT_FIELDS))
    shipment.updated_by = actor

    # observed behaviour: any correction lifts the hold, limit or not
    released = release_from_hold(db, shipment, actor)

    delta = shipment.total_amt - old_total
    if delta != 0:
        await apply_balance_delta(db, shipment.account_code, delta)
        append_correction(db, shipment, delta, actor, date.today(), remarks)

    await emit_activity(
        db,
        actor=actor,
        code=ActivityCode.CORRECT_TOTAL,
        reference=shipment.awb_no,
        awb_no=shipment.awb_no,
        old_value=old_total,
        new_value=shipment.total_amt,
    )
    if released:
        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.RELEASE_HOLD,
            reference=shipment.awb_no,
            awb_no=shipment.awb_no,
        )

    logger.info(
        "Shipment total corrected",
        extra={
            "awb_no": shipment.awb_no,
            "old_total": str(old_total),
            "new_total": str(shipment.total_amt),
            "delta": str(delta),
            "released": released,
        },
    )


async def correct_shipment_total(
    db: AsyncSession,
    awb_no: str,
    payload: ShipmentTotalCorrection,
    actor: str,
) -> ShipmentOut:
    shipment = await get_shipment(db, awb_no, for_update=True)
    ensure_editable(shipment)

    try:
        await _apply_correction(db, shipment, payload, actor, payload.remarks)
        await db.commit()
    except AppException:
        await db.rollback()
        raise

    return await _to_out(db, shipment)


async def auto_calculate(
    db: AsyncSession,
    awb_no: str,
    actor: str,
    *,
    rate_engine: RateEngine | None = None,
) -> tuple[ShipmentOut, list[str]]:
    """Re-tariff a shipment through the rate engine and apply it as a correction."""
    shipment = await get_shipment(db, awb_no, for_update=True)
    ensure_editable(shipment)

    engine = rate_engine or default_rate_engine
    try:
        quote = await engine.quote(
            account_code=shipment.account_code,
            sector=shipment.sector,
            service=shipment.service,
            shipment_date=shipment.shipment_date,
            weight=chargeable_weight(shipment.actual_weight, shipment.volumetric_weight),
        )
    except DegradedError as e:
        logger.warning("Auto calculation skipped", extra={"awb_no": shipment.awb_no, "error": e.message})
        await db.rollback()
        return await _to_out(db, shipment), [str(e)]

    try:
        await _apply_correction(db, shipment, quote, actor, f"Auto calculated (zone {quote.zone})")
        await db.commit()
    except AppException:
        await db.rollback()
        raise

    return await _to_out(db, shipment), []


# =====================================================
# COMPLETE DATA LOCK
# =====================================================
async def set_data_lock(db: AsyncSession, payload: DataLockRequest, actor: str) -> DataLockResult:
    if payload.awb_no:
        shipments = [await get_shipment(db, payload.awb_no, for_update=True)]
    else:
        filters = [Shipment.shipment_date.between(payload.from_date, payload.to_date)]
        if payload.account_code:
            account = await get_account(db, payload.account_code)
            filters.append(Shipment.account_code == account.account_code)
        result = await db.execute(select(Shipment).where(*filters).with_for_update())
        shipments = result.scalars().all()

    from_state, to_state = ("unlocked", "locked") if payload.locked else ("locked", "unlocked")
    changed = 0
    for shipment in shipments:
        if shipment.complete_data_lock == payload.locked:
            continue
        shipment.complete_data_lock = payload.locked
        shipment.updated_by = actor
        record_lock_transition(
            db,
            entity=LockEntity.shipment,
            reference=shipment.awb_no,
            from_state=from_state,
            to_state=to_state,
            actor=actor,
        )
        changed += 1

    if changed:
        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.DATA_LOCK if payload.locked else ActivityCode.DATA_UNLOCK,
            reference=payload.awb_no,
            count=changed,
        )
    await db.commit()

    logger.info("Data lock updated", extra={"locked": payload.locked, "count": changed})
    return DataLockResult(locked=payload.locked, count=changed)
