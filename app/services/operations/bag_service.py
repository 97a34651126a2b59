# app/services/operations/bag_service.py
"""Bag membership and the one-way Open -> Finalized transition."""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.exceptions import AppException, ConflictError, NotFoundError, ValidationError
from app.models.enums.bag_status import BagStatus
from app.models.enums.lock_entity import LockEntity
from app.models.enums.shipment_status import ShipmentStatus
from app.models.operations.bag_models import Bag, BagRow
from app.schemas.operations.bag_schemas import BagAssign, BagOut, BagRowOut
from app.services.external.notification_service import NotificationDispatcher, notify_safely
from app.services.operations.run_service import get_run, summarize_bag, bag_totals
from app.services.operations.shipment_service import get_shipment
from app.utils.activity_helpers import emit_activity
from app.utils.decimal_utils import to_weight
from app.utils.lock_helpers import record_lock_transition
from app.utils.normalize import normalize_ref
from app.utils.weights import chargeable_weight

logger = logging.getLogger(__name__)

# shipments in these states can be (re)bagged
BAGGABLE_STATUSES = {
    ShipmentStatus.unassigned,
    ShipmentStatus.bagged,
    ShipmentStatus.offloaded,
}


async def get_bag(db: AsyncSession, bag_no: str, *, for_update: bool = False) -> Bag | None:
    stmt = select(Bag).where(Bag.bag_no == normalize_ref(bag_no)).execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def _require_bag(db: AsyncSession, bag_no: str, *, for_update: bool = False) -> Bag:
    bag = await get_bag(db, bag_no, for_update=for_update)
    if not bag:
        raise NotFoundError("Bag not found", ErrorCode.BAG_NOT_FOUND)
    return bag


async def _active_row(db: AsyncSession, awb_no: str) -> BagRow | None:
    return (
        await db.execute(
            select(BagRow).where(
                BagRow.awb_no == awb_no,
                BagRow.offloaded_at.is_(None),
            )
        )
    ).scalar_one_or_none()


async def _to_out(db: AsyncSession, bag: Bag) -> BagOut:
    await db.refresh(bag)
    summary = summarize_bag(bag)
    return BagOut(
        bag_no=bag.bag_no,
        run_no=bag.run_no,
        status=bag.status,
        is_final=bag.is_final,
        finalized_at=bag.finalized_at,
        finalized_by=bag.finalized_by,
        no_of_awb=summary.no_of_awb,
        bag_weight=summary.bag_weight,
        chargeable_weight=summary.chargeable_weight,
        rows=[BagRowOut.model_validate(r) for r in bag.rows if r.offloaded_at is None],
    )


async def assign_to_bag(db: AsyncSession, payload: BagAssign, actor: str) -> BagOut:
    awb_no = normalize_ref(payload.awb_no)
    bag_no = normalize_ref(payload.bag_no)
    run_no = normalize_ref(payload.run_no)

    # -------------------------
    # 1. Validate everything before touching anything
    # -------------------------
    bag = await get_bag(db, bag_no, for_update=True)
    if bag and bag.is_final:
        raise ConflictError(f"Bag {bag_no} is already finalized", ErrorCode.BAG_ALREADY_FINALIZED)
    if bag and bag.run_no != run_no:
        raise ValidationError(
            f"Bag {bag_no} belongs to run {bag.run_no}",
            ErrorCode.BAG_RUN_MISMATCH,
        )

    run = await get_run(db, run_no)
    shipment = await get_shipment(db, awb_no, for_update=True)

    if shipment.complete_data_lock:
        raise ConflictError("Shipment data is locked", ErrorCode.SHIPMENT_LOCKED)
    if shipment.is_hold:
        raise ConflictError(
            f"Shipment is on hold: {shipment.hold_reason}",
            ErrorCode.SHIPMENT_ON_HOLD,
        )
    if shipment.status not in BAGGABLE_STATUSES:
        raise ConflictError(
            f"Shipment is {shipment.status.value} and cannot be bagged",
            ErrorCode.SHIPMENT_INVALID_STATE,
        )

    previous = await _active_row(db, awb_no)
    if previous and previous.bag_id == (bag.id if bag else None):
        # same bag again: nothing to move
        return await _to_out(db, bag)

    if previous:
        previous_bag = await db.get(Bag, previous.bag_id, with_for_update=True)
        if previous_bag.is_final:
            raise ConflictError(
                f"Shipment sits in finalized bag {previous_bag.bag_no}",
                ErrorCode.BAG_ALREADY_FINALIZED,
            )

    weight = (
        to_weight(payload.weight)
        if payload.weight is not None
        else chargeable_weight(shipment.actual_weight, shipment.volumetric_weight)
    )

    # -------------------------
    # 2. Apply (one transaction)
    # -------------------------
    try:
        if bag is None:
            bag = Bag(
                bag_no=bag_no,
                run_no=run.run_no,
                status=BagStatus.open,
                created_by=actor,
                updated_by=actor,
            )
            db.add(bag)
            await db.flush()

        if previous:
            await db.delete(previous)
            await db.flush()

        db.add(
            BagRow(
                bag_id=bag.id,
                awb_no=awb_no,
                run_no=run.run_no,
                weight=weight,
                chargeable_weight=chargeable_weight(shipment.actual_weight, shipment.volumetric_weight),
                added_by=actor,
            )
        )

        shipment.run_no = run.run_no
        shipment.bag_no = bag_no
        shipment.manifest_no = None
        shipment.status = ShipmentStatus.bagged
        shipment.updated_by = actor

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.ASSIGN_TO_BAG,
            reference=awb_no,
            awb_no=awb_no,
            bag_no=bag_no,
            run_no=run.run_no,
        )

        await db.flush()
        await db.commit()

    except AppException:
        await db.rollback()
        raise

    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            "Shipment was bagged concurrently",
            ErrorCode.CONFLICT,
        )

    logger.info("Shipment bagged", extra={"awb_no": awb_no, "bag_no": bag_no, "run_no": run.run_no})
    return await _to_out(db, bag)


async def finalize_bag(
    db: AsyncSession,
    bag_no: str,
    actor: str,
    *,
    notifier: NotificationDispatcher | None = None,
) -> tuple[BagOut, list[str]]:
    """One-way; repeating it on a finalized bag is a no-op success."""
    bag = await _require_bag(db, bag_no, for_update=True)

    if bag.is_final:
        return await _to_out(db, bag), []

    await db.refresh(bag, attribute_names=["rows"])
    if not any(r.offloaded_at is None for r in bag.rows):
        raise ValidationError("Cannot finalize an empty bag", ErrorCode.BAG_EMPTY)

    bag.status = BagStatus.finalized
    bag.finalized_at = datetime.now(timezone.utc)
    bag.final_no_of_awb, bag.final_weight, bag.final_chargeable_weight = bag_totals(bag)
    bag.finalized_by = actor
    bag.updated_by = actor

    record_lock_transition(
        db,
        entity=LockEntity.bag,
        reference=bag.bag_no,
        from_state=BagStatus.open.value,
        to_state=BagStatus.finalized.value,
        actor=actor,
    )
    await emit_activity(db, actor=actor, code=ActivityCode.FINALIZE_BAG, reference=bag.bag_no, bag_no=bag.bag_no)
    await db.commit()

    logger.info("Bag finalized", extra={"bag_no": bag.bag_no, "run_no": bag.run_no})

    out = await _to_out(db, bag)
    warnings = await notify_safely(
        notifier,
        "bag.finalized",
        {"bag_no": out.bag_no, "run_no": out.run_no, "no_of_awb": out.no_of_awb},
    )
    return out, warnings


async def get_bag_details(db: AsyncSession, bag_no: str) -> BagOut:
    bag = await _require_bag(db, bag_no)
    return await _to_out(db, bag)
