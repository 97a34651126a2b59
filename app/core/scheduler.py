import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.config import RECONCILE_CRON_HOUR
from app.core.db import AsyncSessionLocal

from app.services.billing.reconciliation_service import reconcile

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


@scheduler.scheduled_job(
    "cron",
    hour=RECONCILE_CRON_HOUR,
    minute=0,
    id="reconcile_ledger",
    coalesce=True,
    max_instances=1,
)  # daily; report only, never repairs
async def reconcile_job():
    async with AsyncSessionLocal() as db:
        try:
            report = await reconcile(db)
        except Exception:
            logger.exception("Scheduled reconciliation failed")
            return

    if not report.ok:
        logger.warning(
            "Scheduled reconciliation found drift",
            extra={
                "balance_drifts": len(report.balance_drifts),
                "billing_mismatches": len(report.billing_mismatches),
            },
        )
