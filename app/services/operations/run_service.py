# app/services/operations/run_service.py
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.constants.run_steps import RUN_STEPS, BAGGING_STEPS
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.operations.bag_models import Bag
from app.models.operations.run_models import Run, RunStatusEntry
from app.schemas.operations.run_schemas import (
    RunCreate,
    RunStatusUpdate,
    RunOut,
    RunSummary,
    RunBagSummary,
)
from app.utils.activity_helpers import emit_activity
from app.utils.decimal_utils import to_weight
from app.utils.normalize import normalize_ref

logger = logging.getLogger(__name__)


async def get_run(db: AsyncSession, run_no: str, *, for_update: bool = False) -> Run:
    stmt = select(Run).where(Run.run_no == normalize_ref(run_no)).execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()
    run = (await db.execute(stmt)).scalar_one_or_none()
    if not run:
        raise NotFoundError("Run not found", ErrorCode.RUN_NOT_FOUND)
    return run


async def _to_out(db: AsyncSession, run: Run) -> RunOut:
    await db.refresh(run)
    return RunOut.model_validate(run)


async def create_run(db: AsyncSession, payload: RunCreate, actor: str) -> RunOut:
    run_no = normalize_ref(payload.run_no)

    run = Run(
        run_no=run_no,
        flight_no=payload.flight_no,
        flight_date=payload.flight_date,
        airline=payload.airline,
        origin=payload.origin,
        destination=payload.destination,
        status_step=0,
        status=RUN_STEPS[0],
        created_by=actor,
        updated_by=actor,
    )
    run.status_history.append(
        RunStatusEntry(step=0, status=RUN_STEPS[0], actor=actor)
    )

    try:
        db.add(run)
        await db.flush()
        await emit_activity(db, actor=actor, code=ActivityCode.CREATE_RUN, reference=run_no, run_no=run_no)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Run number already exists", ErrorCode.RUN_EXISTS)

    logger.info("Run created", extra={"run_no": run_no})
    return await _to_out(db, run)


async def get_run_details(db: AsyncSession, run_no: str) -> RunOut:
    run = await get_run(db, run_no)
    return await _to_out(db, run)


async def list_run_bags(db: AsyncSession, run_no: str) -> list[Bag]:
    result = await db.execute(
        select(Bag).where(Bag.run_no == run_no).order_by(Bag.id)
    )
    bags = result.scalars().all()
    for bag in bags:
        # rows may have been changed by another statement in this session
        await db.refresh(bag, attribute_names=["rows"])
    return bags


async def update_run_status(db: AsyncSession, run_no: str, payload: RunStatusUpdate, actor: str) -> RunOut:
    """Advance a run to a later milestone. Steps never move backwards."""
    run = await get_run(db, run_no, for_update=True)

    if payload.status not in RUN_STEPS:
        raise ValidationError(
            "Unknown run status",
            ErrorCode.RUN_INVALID_STATUS,
            details={"allowed": list(RUN_STEPS)},
        )

    step = RUN_STEPS.index(payload.status)
    if step == run.status_step:
        return await _to_out(db, run)
    if step < run.status_step:
        raise ConflictError(
            f"Run is already at '{run.status}'",
            ErrorCode.RUN_INVALID_STATUS,
        )

    if payload.status in BAGGING_STEPS:
        bags = await list_run_bags(db, run.run_no)
        if not bags or not all(b.is_final for b in bags):
            raise ConflictError(
                "Every bag of the run must be finalized first",
                ErrorCode.BAGS_NOT_FINALIZED,
            )

    run.status_step = step
    run.status = payload.status
    run.updated_by = actor
    db.add(
        RunStatusEntry(
            run_id=run.id,
            step=step,
            status=payload.status,
            remarks=payload.remarks,
            actor=actor,
        )
    )
    await emit_activity(
        db,
        actor=actor,
        code=ActivityCode.UPDATE_RUN_STATUS,
        reference=run.run_no,
        run_no=run.run_no,
        status=payload.status,
    )
    await db.commit()

    logger.info("Run status updated", extra={"run_no": run.run_no, "status": payload.status})
    return await _to_out(db, run)


def bag_totals(bag: Bag) -> tuple[int, Decimal, Decimal]:
    """AWB count, weight and chargeable weight of the rows still in the bag."""
    active = [r for r in bag.rows if r.offloaded_at is None]
    return (
        len(active),
        sum((to_weight(r.weight) for r in active), Decimal("0.000")),
        sum((to_weight(r.chargeable_weight) for r in active), Decimal("0.000")),
    )


def summarize_bag(bag: Bag) -> RunBagSummary:
    if bag.is_final and bag.final_no_of_awb is not None:
        count, weight, chargeable = (
            bag.final_no_of_awb,
            to_weight(bag.final_weight),
            to_weight(bag.final_chargeable_weight),
        )
    else:
        count, weight, chargeable = bag_totals(bag)
    return RunBagSummary(
        bag_no=bag.bag_no,
        is_final=bag.is_final,
        no_of_awb=count,
        bag_weight=weight,
        chargeable_weight=chargeable,
    )


async def get_run_summary(db: AsyncSession, run_no: str) -> RunSummary:
    run = await get_run(db, run_no)
    bags = [summarize_bag(b) for b in await list_run_bags(db, run.run_no)]

    # run totals come from bag totals, never from raw shipment weights
    return RunSummary(
        run_no=run.run_no,
        status=run.status,
        no_of_bags=len(bags),
        no_of_awb=sum(b.no_of_awb for b in bags),
        run_weight=sum((b.bag_weight for b in bags), Decimal("0.000")),
        chargeable_weight=sum((b.chargeable_weight for b in bags), Decimal("0.000")),
        all_bags_final=bool(bags) and all(b.is_final for b in bags),
        bags=bags,
    )
