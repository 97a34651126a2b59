# app/services/operations/club_service.py
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.constants.payment_types import RTO_PAYMENT
from app.core.exceptions import AppException, ConflictError, NotFoundError, ValidationError
from app.models.enums.club_status import ClubStatus
from app.models.enums.lock_entity import LockEntity
from app.models.operations.club_models import Club, ClubRow
from app.models.operations.shipment_models import Shipment
from app.schemas.operations.club_schemas import ClubAttach, ClubOut, ClubableCheck
from app.services.external.notification_service import NotificationDispatcher, notify_safely
from app.services.operations.shipment_service import get_shipment
from app.utils.activity_helpers import emit_activity
from app.utils.lock_helpers import record_lock_transition
from app.utils.normalize import normalize_ref

logger = logging.getLogger(__name__)


def check_clubbable(shipment: Shipment) -> None:
    if (shipment.payment or "").upper() == RTO_PAYMENT:
        raise ValidationError("RTO shipments cannot be clubbed", ErrorCode.NOT_CLUBBABLE)
    if shipment.complete_data_lock:
        raise ConflictError("Shipment data is locked", ErrorCode.SHIPMENT_LOCKED)
    if shipment.club_no:
        raise ConflictError(
            f"Shipment is already in club {shipment.club_no}",
            ErrorCode.ALREADY_CLUBBED,
        )


async def _get_club(db: AsyncSession, club_no: str, *, for_update: bool = False) -> Club | None:
    stmt = select(Club).where(Club.club_no == normalize_ref(club_no)).execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def _require_club(db: AsyncSession, club_no: str, *, for_update: bool = False) -> Club:
    club = await _get_club(db, club_no, for_update=for_update)
    if not club or club.is_deleted:
        raise NotFoundError("Club not found", ErrorCode.CLUB_NOT_FOUND)
    return club


async def _to_out(db: AsyncSession, club: Club) -> ClubOut:
    await db.refresh(club)
    return ClubOut(
        club_no=club.club_no,
        status=club.status,
        is_locked=club.is_locked,
        locked_at=club.locked_at,
        locked_by=club.locked_by,
        awb_nos=[r.awb_no for r in club.rows],
    )


async def validate_awb_for_club(db: AsyncSession, awb_no: str) -> ClubableCheck:
    shipment = await get_shipment(db, awb_no)
    try:
        check_clubbable(shipment)
    except AppException as e:
        return ClubableCheck(
            awb_no=shipment.awb_no,
            clubbable=False,
            error_code=e.error_code.value,
            message=e.detail,
        )
    return ClubableCheck(awb_no=shipment.awb_no, clubbable=True)


async def attach_to_club(db: AsyncSession, payload: ClubAttach, actor: str) -> ClubOut:
    club_no = normalize_ref(payload.club_no)

    club = await _get_club(db, club_no, for_update=True)
    if club and club.is_deleted:
        raise ConflictError(f"Club {club_no} was deleted", ErrorCode.CLUB_LOCKED)
    if club and club.is_locked:
        raise ConflictError(f"Club {club_no} is locked", ErrorCode.CLUB_LOCKED)

    shipment = await get_shipment(db, payload.awb_no, for_update=True)
    check_clubbable(shipment)

    try:
        if club is None:
            club = Club(club_no=club_no, status=ClubStatus.open, created_by=actor, updated_by=actor)
            db.add(club)
            await db.flush()

        db.add(ClubRow(club_id=club.id, awb_no=shipment.awb_no, added_by=actor))
        shipment.club_no = club_no
        shipment.updated_by = actor

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.ATTACH_TO_CLUB,
            reference=shipment.awb_no,
            awb_no=shipment.awb_no,
            club_no=club_no,
        )
        await db.flush()
        await db.commit()

    except IntegrityError:
        await db.rollback()
        raise ConflictError("Shipment was clubbed concurrently", ErrorCode.ALREADY_CLUBBED)

    logger.info("Shipment clubbed", extra={"awb_no": shipment.awb_no, "club_no": club_no})
    return await _to_out(db, club)


async def detach_from_club(db: AsyncSession, awb_no: str, actor: str) -> ClubOut:
    shipment = await get_shipment(db, awb_no, for_update=True)
    if not shipment.club_no:
        raise ValidationError("Shipment is not in a club", ErrorCode.VALIDATION_ERROR)

    club = await _require_club(db, shipment.club_no, for_update=True)
    if club.is_locked:
        raise ConflictError(f"Club {club.club_no} is locked", ErrorCode.CLUB_LOCKED)

    await db.refresh(club, attribute_names=["rows"])
    row = next((r for r in club.rows if r.awb_no == shipment.awb_no), None)
    if row is not None:
        club.rows.remove(row)
    shipment.club_no = None
    shipment.updated_by = actor

    await emit_activity(
        db,
        actor=actor,
        code=ActivityCode.DETACH_FROM_CLUB,
        reference=shipment.awb_no,
        awb_no=shipment.awb_no,
        club_no=club.club_no,
    )
    await db.commit()
    return await _to_out(db, club)


async def lock_club(
    db: AsyncSession,
    club_no: str,
    actor: str,
    *,
    notifier: NotificationDispatcher | None = None,
) -> tuple[ClubOut, list[str]]:
    """One-way like bag finalization; locking a locked club is a no-op."""
    club = await _require_club(db, club_no, for_update=True)
    if club.is_locked:
        return await _to_out(db, club), []

    await db.refresh(club, attribute_names=["rows"])
    if not club.rows:
        raise ValidationError("Cannot lock an empty club", ErrorCode.CLUB_EMPTY)

    club.status = ClubStatus.locked
    club.locked_at = datetime.now(timezone.utc)
    club.locked_by = actor
    club.updated_by = actor

    record_lock_transition(
        db,
        entity=LockEntity.club,
        reference=club.club_no,
        from_state=ClubStatus.open.value,
        to_state=ClubStatus.locked.value,
        actor=actor,
    )
    await emit_activity(db, actor=actor, code=ActivityCode.LOCK_CLUB, reference=club.club_no, club_no=club.club_no)
    await db.commit()

    logger.info("Club locked", extra={"club_no": club.club_no})

    out = await _to_out(db, club)
    warnings = await notify_safely(
        notifier,
        "club.locked",
        {"club_no": out.club_no, "awb_nos": out.awb_nos},
    )
    return out, warnings


async def delete_club(db: AsyncSession, club_no: str, actor: str) -> None:
    club = await _require_club(db, club_no, for_update=True)
    if club.is_locked:
        raise ConflictError(f"Club {club.club_no} is locked", ErrorCode.CLUB_LOCKED)

    await db.refresh(club, attribute_names=["rows"])
    awb_nos = [r.awb_no for r in club.rows]
    if awb_nos:
        result = await db.execute(
            select(Shipment).where(Shipment.awb_no.in_(awb_nos)).with_for_update()
        )
        for shipment in result.scalars().all():
            shipment.club_no = None
            shipment.updated_by = actor

    club.rows.clear()
    club.is_deleted = True
    club.updated_by = actor

    await emit_activity(db, actor=actor, code=ActivityCode.DELETE_CLUB, reference=club.club_no, club_no=club.club_no)
    await db.commit()
    logger.info("Club deleted", extra={"club_no": club.club_no, "released": len(awb_nos)})


async def get_club_details(db: AsyncSession, club_no: str) -> ClubOut:
    club = await _require_club(db, club_no)
    return await _to_out(db, club)
