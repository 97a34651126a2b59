import asyncio
from datetime import date

from app.core.db import AsyncSessionLocal
from app.models.billing.sequence_models import SequenceCounter
from app.services.billing.sequence_service import (
    next_value,
    peek_value,
    next_receipt_no,
    next_manifest_no,
    format_invoice_number,
    INVOICE_SEQUENCE,
)


async def test_numbers_are_gap_free_and_unique_under_concurrency(db):
    db.add(SequenceCounter(name=INVOICE_SEQUENCE, value=0))
    await db.commit()

    callers, calls_each = 5, 10

    async def caller():
        issued = []
        async with AsyncSessionLocal() as session:
            for _ in range(calls_each):
                issued.append(await next_value(session, INVOICE_SEQUENCE))
                await session.commit()
        return issued

    results = await asyncio.gather(*(caller() for _ in range(callers)))
    issued = [n for batch in results for n in batch]

    assert len(issued) == len(set(issued))
    assert sorted(issued) == list(range(1, callers * calls_each + 1))
    # each caller sees its own numbers strictly increasing
    assert all(batch == sorted(batch) for batch in results)


async def test_rolled_back_number_is_issued_again(db):
    first = await next_value(db, "scratch")
    await db.commit()

    lost = await next_value(db, "scratch")
    await db.rollback()
    again = await next_value(db, "scratch")
    await db.commit()

    assert first == 1
    assert lost == again == 2
    assert await peek_value(db, "scratch") == 2


async def test_receipt_numbers_start_at_configured_base(db):
    assert await next_receipt_no(db) == 1000
    assert await next_receipt_no(db) == 1001
    await db.commit()


async def test_manifest_numbers_restart_each_day(db):
    assert await next_manifest_no(db, date(2024, 5, 10)) == "MF-20240510-0001"
    assert await next_manifest_no(db, date(2024, 5, 10)) == "MF-20240510-0002"
    assert await next_manifest_no(db, date(2024, 5, 11)) == "MF-20240511-0001"
    await db.commit()


def test_invoice_number_format_pads_and_widens():
    assert format_invoice_number("DEL", date(2024, 5, 10), 7) == "DEL/20240510/007"
    assert format_invoice_number("DEL", date(2024, 5, 10), 12345) == "DEL/20240510/12345"
