import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from app.constants.error_codes import ErrorCode
from app.constants.payment_types import CREDIT_LIMIT_HOLD_REASON
from app.core.db import AsyncSessionLocal
from app.core.exceptions import ConflictError
from app.models.billing.ledger_models import AccountLedger
from app.models.enums.ledger_entry_type import LedgerEntryType
from app.models.operations.hold_log_models import HoldLog
from app.models.operations.shipment_models import Shipment
from app.schemas.billing.ledger_schemas import ReceiptCreate, AdjustmentCreate
from app.schemas.operations.shipment_schemas import (
    ShipmentCreate,
    ShipmentTotalCorrection,
    DataLockRequest,
)
from app.services.billing.credit_control_service import evaluate_hold
from app.services.billing.ledger_service import get_ledger_summary, record_receipt, record_adjustment
from app.services.external.rate_engine import RateQuote
from app.services.masters.customer_account_service import get_account_details
from app.services.operations.shipment_service import (
    book_shipment,
    correct_shipment_total,
    reevaluate_hold,
    evaluate_hold_for,
    auto_calculate,
    set_data_lock,
)
from app.utils.decimal_utils import to_decimal

from tests.fakes import RecordingNotifier, StubRateEngine


async def balance_of(db, code="ACME") -> Decimal:
    return (await get_account_details(db, code)).left_over_balance


def test_evaluate_hold_limit_is_inclusive():
    assert evaluate_hold(Decimal("500"), Decimal("9500"), Decimal("10000")) == (False, None)
    assert evaluate_hold(Decimal("500.01"), Decimal("9500"), Decimal("10000")) == (
        True,
        CREDIT_LIMIT_HOLD_REASON,
    )


async def test_booking_within_limit_commits_amount(db, make_account, book):
    await make_account(credit_limit="10000")

    shipment = await book("awb1001", basic="1000", cgst_amt=Decimal("90"), sgst_amt=Decimal("90"))

    assert shipment.awb_no == "AWB1001"
    assert shipment.total_amt == Decimal("1180.00")
    assert shipment.is_hold is False
    assert await balance_of(db) == Decimal("1180.00")

    sale = (
        await db.execute(select(AccountLedger).where(AccountLedger.awb_no == "AWB1001"))
    ).scalar_one()
    assert sale.entry_type == LedgerEntryType.sale
    assert sale.total_amt == Decimal("1180.00")


async def test_booking_over_limit_is_held_and_still_commits_amount(db, make_account, book, notifier):
    await make_account(credit_limit="10000", opening_balance="9500")

    shipment = await book("AWB2001", basic="800")

    assert shipment.is_hold is True
    assert shipment.hold_reason == CREDIT_LIMIT_HOLD_REASON
    assert await balance_of(db) == Decimal("10300.00")

    sale = (
        await db.execute(select(AccountLedger).where(AccountLedger.awb_no == "AWB2001"))
    ).scalar_one()
    assert sale.entry_type == LedgerEntryType.sale
    assert sale.total_amt == Decimal("800.00")

    logs = (await db.execute(select(HoldLog).where(HoldLog.awb_no == "AWB2001"))).scalars().all()
    assert [log.action for log in logs] == ["Hold"]
    assert logs[0].balance_snapshot == Decimal("10300.00")
    assert notifier.events[0][0] == "shipment.hold"


async def test_held_shipments_keep_accumulating_in_balance(db, make_account, book):
    await make_account(credit_limit="10000", opening_balance="9500")

    first = await book("AWB2101", basic="800")
    second = await book("AWB2102", basic="400")

    assert first.is_hold is True
    assert second.is_hold is True
    assert await balance_of(db) == Decimal("10700.00")

    await correct_shipment_total(
        db,
        "AWB2101",
        ShipmentTotalCorrection(basic_amt=Decimal("300")),
        "tester",
    )

    rows = (
        await db.execute(
            select(AccountLedger.total_amt)
            .where(AccountLedger.awb_no == "AWB2101")
            .order_by(AccountLedger.id)
        )
    ).scalars().all()
    assert rows == [Decimal("800.00"), Decimal("-500.00")]
    assert await balance_of(db) == Decimal("10200.00")
    summary = await get_ledger_summary(db, "ACME")
    assert summary.outstanding == Decimal("10200.00")


async def test_hold_notification_failure_is_only_a_warning(db, make_account):
    await make_account(credit_limit="100")

    shipment, warnings = await book_shipment(
        db,
        ShipmentCreate(
            awb_no="AWB2002",
            account_code="ACME",
            shipment_date="2024-05-10",
            basic_amt=Decimal("500"),
        ),
        "tester",
        notifier=RecordingNotifier(fail=True),
    )

    assert shipment.is_hold is True
    assert len(warnings) == 1
    assert "notification" in warnings[0]


async def test_correction_releases_hold_and_commits_new_total(db, make_account, book):
    await make_account(credit_limit="10000", opening_balance="9500")
    await book("AWB3001", basic="800")

    corrected = await correct_shipment_total(
        db,
        "AWB3001",
        ShipmentTotalCorrection(basic_amt=Decimal("300")),
        "tester",
    )

    assert corrected.is_hold is False
    assert corrected.total_amt == Decimal("300.00")
    assert await balance_of(db) == Decimal("9800.00")

    actions = (
        await db.execute(select(HoldLog.action).where(HoldLog.awb_no == "AWB3001").order_by(HoldLog.id))
    ).scalars().all()
    assert actions == ["Hold", "Hold Released"]


async def test_correction_of_committed_shipment_applies_signed_delta(db, make_account, book):
    await make_account(credit_limit="10000")
    await book("AWB3002", basic="1000")

    await correct_shipment_total(
        db,
        "AWB3002",
        ShipmentTotalCorrection(basic_amt=Decimal("600")),
        "tester",
    )

    assert await balance_of(db) == Decimal("600.00")
    rows = (
        await db.execute(
            select(AccountLedger.total_amt)
            .where(AccountLedger.awb_no == "AWB3002")
            .order_by(AccountLedger.id)
        )
    ).scalars().all()
    assert rows == [Decimal("1000.00"), Decimal("-400.00")]


async def test_correction_rejected_on_locked_data(db, make_account, book):
    await make_account()
    await book("AWB3003", basic="100")
    await set_data_lock(db, DataLockRequest(awb_no="AWB3003"), "tester")

    with pytest.raises(ConflictError) as exc:
        await correct_shipment_total(
            db,
            "AWB3003",
            ShipmentTotalCorrection(basic_amt=Decimal("50")),
            "tester",
        )
    assert exc.value.error_code == ErrorCode.SHIPMENT_LOCKED
    assert await balance_of(db) == Decimal("100.00")


async def test_reevaluate_hold_after_payment(db, make_account, book):
    await make_account(credit_limit="1000")
    await book("AWB4001", basic="800")
    held = await book("AWB4002", basic="500")
    assert held.is_hold is True

    evaluation = await evaluate_hold_for(db, "AWB4002")
    assert evaluation.is_hold is True
    assert evaluation.hypothetical_balance == Decimal("1300.00")

    # still no room: stays on hold
    still_held = await reevaluate_hold(db, "AWB4002", "tester")
    assert still_held.is_hold is True

    await record_receipt(
        db,
        ReceiptCreate(account_code="ACME", amount=Decimal("500"), payment="Cash"),
        "tester",
    )
    released = await reevaluate_hold(db, "AWB4002", "tester")

    assert released.is_hold is False
    assert await balance_of(db) == Decimal("800.00")


async def test_auto_calculate_applies_rate_quote(db, make_account, book):
    await make_account()
    await book("AWB5001", basic="100", actual_weight=Decimal("2.5"), volumetric_weight=Decimal("3.0"))
    engine = StubRateEngine(RateQuote(zone="N1", basic_amt=Decimal("250"), fuel_amt=Decimal("25")))

    shipment, warnings = await auto_calculate(db, "AWB5001", "tester", rate_engine=engine)

    assert warnings == []
    assert shipment.total_amt == Decimal("275.00")
    assert engine.calls[0]["weight"] == Decimal("3.000")
    assert await balance_of(db) == Decimal("275.00")


async def test_auto_calculate_degraded_leaves_shipment_unchanged(db, make_account, book):
    await make_account()
    await book("AWB5002", basic="100")

    shipment, warnings = await auto_calculate(
        db, "AWB5002", "tester", rate_engine=StubRateEngine(fail=True)
    )

    assert shipment.total_amt == Decimal("100.00")
    assert warnings and "rate_engine" in warnings[0]
    assert await balance_of(db) == Decimal("100.00")


async def test_concurrent_bookings_hold_once_the_limit_is_reached(db, make_account):
    await make_account(credit_limit="1000")

    async def book_one(i):
        async with AsyncSessionLocal() as session:
            shipment, _ = await book_shipment(
                session,
                ShipmentCreate(
                    awb_no=f"AWB60{i:02d}",
                    account_code="ACME",
                    shipment_date="2024-05-10",
                    basic_amt=Decimal("200"),
                ),
                "tester",
                notifier=RecordingNotifier(),
            )
            return shipment

    shipments = await asyncio.gather(*(book_one(i) for i in range(10)))

    assert sum(1 for s in shipments if not s.is_hold) == 5
    assert await balance_of(db) == Decimal("1000.00")
    summary = await get_ledger_summary(db, "ACME")
    assert summary.outstanding == Decimal("1000.00")


async def test_concurrent_corrections_keep_balance_equal_to_its_parts(db, make_account, book):
    await make_account(credit_limit="100000", opening_balance="500")
    for i in range(4):
        await book(f"AWB70{i:02d}", basic="1000")

    new_totals = [Decimal("1500"), Decimal("700"), Decimal("1250"), Decimal("300")]

    async def correct_one(i, basic):
        async with AsyncSessionLocal() as session:
            return await correct_shipment_total(
                session,
                f"AWB70{i:02d}",
                ShipmentTotalCorrection(basic_amt=basic),
                "tester",
            )

    async def receive():
        async with AsyncSessionLocal() as session:
            await record_receipt(
                session,
                ReceiptCreate(account_code="ACME", amount=Decimal("600"), payment="Cash"),
                "tester",
            )

    async def debit():
        async with AsyncSessionLocal() as session:
            await record_adjustment(
                session,
                AdjustmentCreate(account_code="ACME", debit_amount=Decimal("40")),
                "tester",
            )

    await asyncio.gather(
        *(correct_one(i, basic) for i, basic in enumerate(new_totals)),
        receive(),
        debit(),
    )

    shipped = await db.scalar(
        select(func.sum(Shipment.total_amt)).where(Shipment.account_code == "ACME")
    )
    assert to_decimal(shipped) == Decimal("3750.00")

    expected = Decimal("500") + to_decimal(shipped) - Decimal("600") + Decimal("40")
    balance = await balance_of(db)
    assert abs(balance - expected) <= Decimal("0.01")
    assert balance == Decimal("3690.00")
    summary = await get_ledger_summary(db, "ACME")
    assert summary.outstanding == balance
