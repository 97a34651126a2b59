# app/services/billing/sequence_service.py
"""Atomic document numbering.

Each series is one ``sequence_counters`` row advanced with
``UPDATE ... SET value = value + 1 ... RETURNING value``. The increment runs
inside the caller's transaction, so a rolled back invoice also rolls back its
number and readers never observe a gap.
"""
import logging
from datetime import date

from sqlalchemy import select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import RECEIPT_START_NO, INVOICE_SR_PADDING
from app.models.billing.sequence_models import SequenceCounter
from app.models.billing.invoice_models import Invoice
from app.models.billing.ledger_models import AccountLedger

logger = logging.getLogger(__name__)

INVOICE_SEQUENCE = "invoice"
RECEIPT_SEQUENCE = "receipt"
MANIFEST_SEQUENCE_PREFIX = "manifest"


async def _initial_value(db: AsyncSession, name: str) -> int:
    # first use of a series continues from data that already exists
    if name == INVOICE_SEQUENCE:
        current = await db.scalar(select(func.max(Invoice.invoice_sr_no)))
        return int(current or 0)
    if name == RECEIPT_SEQUENCE:
        current = await db.scalar(select(func.max(AccountLedger.receipt_no)))
        return int(current) if current else RECEIPT_START_NO - 1
    return 0


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Unsupported dialect for sequences: {dialect}")


async def next_value(db: AsyncSession, name: str) -> int:
    stmt = (
        update(SequenceCounter)
        .where(SequenceCounter.name == name)
        .values(value=SequenceCounter.value + 1)
        .returning(SequenceCounter.value)
        .execution_options(synchronize_session=False)
    )

    value = (await db.execute(stmt)).scalar_one_or_none()
    if value is not None:
        return int(value)

    # -------------------------
    # Seed the counter once
    # -------------------------
    seed = await _initial_value(db, name)
    insert = _insert_for(db)
    await db.execute(
        insert(SequenceCounter)
        .values(name=name, value=seed)
        .on_conflict_do_nothing(index_elements=["name"])
    )
    logger.info("Sequence seeded", extra={"sequence": name, "seed": seed})

    value = (await db.execute(stmt)).scalar_one()
    return int(value)


async def peek_value(db: AsyncSession, name: str) -> int:
    """Last issued number, without issuing one."""
    current = await db.scalar(
        select(SequenceCounter.value).where(SequenceCounter.name == name)
    )
    if current is None:
        return await _initial_value(db, name)
    return int(current)


async def next_invoice_sr_no(db: AsyncSession) -> int:
    return await next_value(db, INVOICE_SEQUENCE)


async def next_receipt_no(db: AsyncSession) -> int:
    return await next_value(db, RECEIPT_SEQUENCE)


async def next_manifest_no(db: AsyncSession, on: date) -> str:
    day = on.strftime("%Y%m%d")
    seq = await next_value(db, f"{MANIFEST_SEQUENCE_PREFIX}:{day}")
    return f"MF-{day}-{seq:04d}"


def format_invoice_number(branch: str, invoice_date: date, sr_no: int) -> str:
    # serials wider than the padding are kept whole
    return f"{branch}/{invoice_date:%Y%m%d}/{sr_no:0{INVOICE_SR_PADDING}d}"
