# app/services/operations/offload_service.py
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.exceptions import AppException, ConflictError, ValidationError
from app.models.enums.offload_type import OffloadType
from app.models.enums.shipment_status import ShipmentStatus
from app.models.operations.bag_models import BagRow
from app.models.operations.offload_models import OffloadRecord
from app.models.operations.shipment_models import Shipment
from app.schemas.operations.offload_schemas import AwbOffloadRequest, RunOffloadRequest, OffloadRecordOut
from app.services.external.notification_service import NotificationDispatcher, notify_safely
from app.services.operations.run_service import get_run
from app.services.operations.shipment_service import get_shipment
from app.utils.activity_helpers import emit_activity
from app.utils.normalize import normalize_ref

logger = logging.getLogger(__name__)


def _check_offloadable(shipment: Shipment) -> None:
    if not shipment.run_no:
        raise ValidationError(
            f"Shipment {shipment.awb_no} is not on any run",
            ErrorCode.SHIPMENT_NOT_BAGGED,
        )
    if shipment.complete_data_lock:
        raise ConflictError("Shipment data is locked", ErrorCode.SHIPMENT_LOCKED)
    if shipment.status == ShipmentStatus.delivered:
        raise ConflictError("Delivered shipments cannot be offloaded", ErrorCode.SHIPMENT_INVALID_STATE)


async def _offload_one(
    db: AsyncSession,
    shipment: Shipment,
    *,
    offload_type: OffloadType,
    reason: str,
    alert_customer: bool,
    actor: str,
    now: datetime,
) -> OffloadRecord:
    # the bag row is kept as history; it just stops counting as membership
    row = (
        await db.execute(
            select(BagRow).where(
                BagRow.awb_no == shipment.awb_no,
                BagRow.offloaded_at.is_(None),
            )
        )
    ).scalar_one_or_none()
    if row is not None:
        row.offloaded_at = now

    record = OffloadRecord(
        awb_no=shipment.awb_no,
        account_code=shipment.account_code,
        run_no=shipment.run_no,
        bag_no=shipment.bag_no,
        offload_type=offload_type,
        reason=reason,
        alert_customer=alert_customer,
        actor=actor,
    )
    db.add(record)

    await emit_activity(
        db,
        actor=actor,
        code=ActivityCode.OFFLOAD_SHIPMENT,
        reference=shipment.awb_no,
        awb_no=shipment.awb_no,
        run_no=shipment.run_no,
        reason=reason,
    )

    shipment.run_no = None
    shipment.bag_no = None
    shipment.manifest_no = None
    shipment.status = ShipmentStatus.offloaded
    shipment.updated_by = actor
    return record


async def _alerts(notifier, records: list[OffloadRecord]) -> list[str]:
    warnings: list[str] = []
    for record in records:
        if record.alert_customer:
            warnings += await notify_safely(
                notifier,
                "shipment.offloaded",
                {
                    "awb_no": record.awb_no,
                    "account_code": record.account_code,
                    "run_no": record.run_no,
                    "reason": record.reason,
                },
            )
    return warnings


async def offload_awb(
    db: AsyncSession,
    payload: AwbOffloadRequest,
    actor: str,
    *,
    notifier: NotificationDispatcher | None = None,
) -> tuple[OffloadRecordOut, list[str]]:
    shipment = await get_shipment(db, payload.awb_no, for_update=True)
    _check_offloadable(shipment)

    try:
        record = await _offload_one(
            db,
            shipment,
            offload_type=OffloadType.awb,
            reason=payload.reason,
            alert_customer=payload.alert_customer,
            actor=actor,
            now=datetime.now(timezone.utc),
        )
        await db.flush()
        await db.commit()
    except AppException:
        await db.rollback()
        raise

    await db.refresh(record)
    logger.info("Shipment offloaded", extra={"awb_no": record.awb_no, "run_no": record.run_no})
    return OffloadRecordOut.model_validate(record), await _alerts(notifier, [record])


async def offload_run(
    db: AsyncSession,
    payload: RunOffloadRequest,
    actor: str,
    *,
    notifier: NotificationDispatcher | None = None,
) -> tuple[list[OffloadRecordOut], list[str]]:
    run = await get_run(db, payload.run_no)

    result = await db.execute(
        select(Shipment)
        .where(Shipment.run_no == run.run_no)
        .order_by(Shipment.id)
        .with_for_update()
    )
    on_run = {s.awb_no: s for s in result.scalars().all()}

    if payload.awb_nos:
        wanted = [normalize_ref(a) for a in payload.awb_nos]
        missing = [a for a in wanted if a not in on_run]
        if missing:
            raise ValidationError(
                "Some shipments are not on this run",
                ErrorCode.SHIPMENT_NOT_BAGGED,
                details={"awb_nos": missing},
            )
        targets = [on_run[a] for a in dict.fromkeys(wanted)]
    else:
        targets = list(on_run.values())

    if not targets:
        raise ValidationError("No shipments to offload on this run", ErrorCode.SHIPMENT_NOT_BAGGED)

    for shipment in targets:
        _check_offloadable(shipment)

    now = datetime.now(timezone.utc)
    records: list[OffloadRecord] = []
    try:
        for shipment in targets:
            records.append(
                await _offload_one(
                    db,
                    shipment,
                    offload_type=OffloadType.run,
                    reason=payload.reason,
                    alert_customer=payload.alert_customer,
                    actor=actor,
                    now=now,
                )
            )
        await db.flush()
        await db.commit()
    except AppException:
        await db.rollback()
        raise

    for record in records:
        await db.refresh(record)

    logger.info("Run offloaded", extra={"run_no": run.run_no, "count": len(records)})
    return [OffloadRecordOut.model_validate(r) for r in records], await _alerts(notifier, records)


async def list_offloads(
    db: AsyncSession,
    *,
    run_no: str | None = None,
    awb_no: str | None = None,
) -> list[OffloadRecordOut]:
    filters = []
    if run_no:
        filters.append(OffloadRecord.run_no == normalize_ref(run_no))
    if awb_no:
        filters.append(OffloadRecord.awb_no == normalize_ref(awb_no))

    result = await db.execute(
        select(OffloadRecord).where(*filters).order_by(OffloadRecord.id)
    )
    return [OffloadRecordOut.model_validate(r) for r in result.scalars().all()]
