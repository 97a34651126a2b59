# app/services/operations/manifest_service.py
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.exceptions import ConflictError, NotFoundError
from app.models.enums.shipment_status import ShipmentStatus
from app.models.operations.manifest_models import Manifest
from app.models.operations.shipment_models import Shipment
from app.schemas.operations.manifest_schemas import ManifestOut
from app.schemas.operations.shipment_schemas import ShipmentOut
from app.services.billing.sequence_service import next_manifest_no
from app.services.operations.run_service import get_run, list_run_bags, bag_totals
from app.services.operations.shipment_service import get_shipment
from app.utils.activity_helpers import emit_activity

logger = logging.getLogger(__name__)


async def _to_out(db: AsyncSession, manifest: Manifest) -> ManifestOut:
    await db.refresh(manifest)
    awb_nos = (
        await db.execute(
            select(Shipment.awb_no)
            .where(Shipment.manifest_no == manifest.manifest_no)
            .order_by(Shipment.awb_no)
        )
    ).scalars().all()
    return ManifestOut(
        manifest_no=manifest.manifest_no,
        run_no=manifest.run_no,
        no_of_bags=manifest.no_of_bags,
        no_of_awb=manifest.no_of_awb,
        total_weight=manifest.total_weight,
        awb_nos=list(awb_nos),
        created_by=manifest.created_by,
        created_at=manifest.created_at,
    )


async def create_manifest(db: AsyncSession, run_no: str, actor: str) -> ManifestOut:
    """Issue the run's manifest once every bag is final. Idempotent per run."""
    run = await get_run(db, run_no, for_update=True)

    existing = (
        await db.execute(select(Manifest).where(Manifest.run_no == run.run_no))
    ).scalar_one_or_none()
    if existing:
        return await _to_out(db, existing)

    bags = await list_run_bags(db, run.run_no)
    if not bags or not all(b.is_final for b in bags):
        raise ConflictError(
            "Every bag of the run must be finalized first",
            ErrorCode.BAGS_NOT_FINALIZED,
        )

    # the manifest lists what is still on board, not the sealed bag totals
    awb_nos = [r.awb_no for b in bags for r in b.rows if r.offloaded_at is None]
    weight = sum((bag_totals(b)[1] for b in bags), Decimal("0.000"))

    try:
        manifest_no = await next_manifest_no(db, date.today())
        manifest = Manifest(
            manifest_no=manifest_no,
            run_no=run.run_no,
            no_of_bags=len(bags),
            no_of_awb=len(awb_nos),
            total_weight=weight,
            created_by=actor,
            updated_by=actor,
        )
        db.add(manifest)

        if awb_nos:
            result = await db.execute(
                select(Shipment).where(Shipment.awb_no.in_(awb_nos)).with_for_update()
            )
            for shipment in result.scalars().all():
                shipment.manifest_no = manifest_no
                shipment.status = ShipmentStatus.manifested
                shipment.updated_by = actor

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.CREATE_MANIFEST,
            reference=manifest_no,
            manifest_no=manifest_no,
            run_no=run.run_no,
        )
        await db.flush()
        await db.commit()

    except IntegrityError:
        await db.rollback()
        raise ConflictError("Manifest already issued for this run", ErrorCode.CONFLICT)

    logger.info("Manifest created", extra={"manifest_no": manifest_no, "run_no": run.run_no})
    return await _to_out(db, manifest)


async def get_manifest(db: AsyncSession, run_no: str) -> ManifestOut:
    run = await get_run(db, run_no)
    manifest = (
        await db.execute(select(Manifest).where(Manifest.run_no == run.run_no))
    ).scalar_one_or_none()
    if not manifest:
        raise NotFoundError("Manifest not found", ErrorCode.MANIFEST_NOT_FOUND)
    return await _to_out(db, manifest)


async def mark_delivered(db: AsyncSession, awb_no: str, actor: str) -> ShipmentOut:
    shipment = await get_shipment(db, awb_no, for_update=True)
    if shipment.status == ShipmentStatus.delivered:
        await db.refresh(shipment)
        return ShipmentOut.model_validate(shipment)
    if shipment.status != ShipmentStatus.manifested:
        raise ConflictError(
            "Only manifested shipments can be delivered",
            ErrorCode.SHIPMENT_INVALID_STATE,
        )

    shipment.status = ShipmentStatus.delivered
    shipment.updated_by = actor
    await emit_activity(
        db,
        actor=actor,
        code=ActivityCode.MARK_DELIVERED,
        reference=shipment.awb_no,
        awb_no=shipment.awb_no,
    )
    await db.commit()
    await db.refresh(shipment)
    return ShipmentOut.model_validate(shipment)
