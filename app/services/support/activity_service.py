# app/services/support/activity_service.py

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, asc

from app.models.support.activity_models import ActivityLog
from app.schemas.support.activity_schemas import (
    ActivityOut,
    ActivityFilters,
    ActivityListData,
)
from app.core.exceptions import ValidationError
from app.utils.normalize import normalize_ref

logger = logging.getLogger(__name__)


async def list_activities(
    *,
    db: AsyncSession,
    filters: ActivityFilters,
) -> ActivityListData:
    if filters.sort_order not in ("asc", "desc"):
        raise ValidationError("Invalid sort order")

    # -------------------------
    # Filters
    # -------------------------
    conditions = []
    if filters.actor:
        conditions.append(ActivityLog.actor.ilike(f"%{filters.actor}%"))
    if filters.code:
        conditions.append(ActivityLog.code == filters.code.strip().upper())
    if filters.reference:
        conditions.append(ActivityLog.reference == normalize_ref(filters.reference))

    order_fn = desc if filters.sort_order == "desc" else asc
    offset = (filters.page - 1) * filters.page_size

    total = await db.scalar(select(func.count(ActivityLog.id)).where(*conditions))
    result = await db.execute(
        select(ActivityLog)
        .where(*conditions)
        .order_by(order_fn(ActivityLog.created_at), order_fn(ActivityLog.id))
        .limit(filters.page_size)
        .offset(offset)
    )

    logger.info(
        "Activities fetched",
        extra={"total": total, "page": filters.page, "page_size": filters.page_size},
    )

    return ActivityListData(
        total=total or 0,
        items=[ActivityOut.model_validate(a) for a in result.scalars().all()],
    )
