from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import select, func

from app.core.exceptions import ValidationError
from app.models.billing.ledger_models import AccountLedger
from app.schemas.billing.ledger_schemas import ReceiptCreate, AdjustmentCreate
from app.schemas.operations.shipment_schemas import ShipmentTotalCorrection
from app.services.billing.ledger_service import (
    get_ledger_summary,
    get_statement,
    record_receipt,
    record_adjustment,
    peek_next_receipt_no,
)
from app.services.masters.customer_account_service import get_account_details
from app.services.operations.shipment_service import correct_shipment_total, reevaluate_hold


async def receipt(db, amount, payment="Cash"):
    return await record_receipt(
        db,
        ReceiptCreate(account_code="ACME", amount=Decimal(amount), payment=payment),
        "tester",
    )


async def test_ledger_matches_running_balance_after_mixed_activity(db, make_account, book):
    await make_account(credit_limit="2000", opening_balance="250")
    await book("L1", basic="900")
    await book("L2", basic="1200")  # held
    await correct_shipment_total(db, "L1", ShipmentTotalCorrection(basic_amt=Decimal("700")), "tester")
    await receipt(db, "400")
    await record_adjustment(
        db, AdjustmentCreate(account_code="ACME", debit_amount=Decimal("35")), "tester"
    )
    await record_adjustment(
        db, AdjustmentCreate(account_code="ACME", credit_amount=Decimal("10")), "tester"
    )
    await reevaluate_hold(db, "L2", "tester")

    account = await get_account_details(db, "ACME")
    summary = await get_ledger_summary(db, "ACME")
    statement = await get_statement(db, "ACME")

    # 250 + 900 + 1200 - 200 - 400 + 35 - 10
    assert account.left_over_balance == Decimal("1775.00")
    assert summary.outstanding == account.left_over_balance
    assert statement.closing == account.left_over_balance
    assert summary.total_payment == Decimal("400.00")
    assert summary.total_debit == Decimal("285.00")
    assert summary.total_credit == Decimal("10.00")


async def test_shipment_ledger_rows_sum_to_its_current_total(db, make_account, book):
    await make_account(credit_limit="10000", opening_balance="9500")
    await book("D1", basic="800")
    await correct_shipment_total(db, "D1", ShipmentTotalCorrection(basic_amt=Decimal("300")), "tester")
    await correct_shipment_total(db, "D1", ShipmentTotalCorrection(basic_amt=Decimal("450")), "tester")

    total = await db.scalar(
        select(func.sum(AccountLedger.total_amt)).where(AccountLedger.awb_no == "D1")
    )
    assert Decimal(str(total)).quantize(Decimal("0.01")) == Decimal("450.00")
    assert (await get_account_details(db, "ACME")).left_over_balance == Decimal("9950.00")


async def test_receipts_are_numbered_from_1000(db, make_account):
    await make_account()
    assert await peek_next_receipt_no(db) == 1000

    first = await receipt(db, "10")
    second = await receipt(db, "20", payment="NEFT")

    assert (first.receipt_no, second.receipt_no) == (1000, 1001)
    assert await peek_next_receipt_no(db) == 1002
    assert (await get_account_details(db, "ACME")).left_over_balance == Decimal("-30.00")


async def test_unknown_receipt_mode_is_rejected(db, make_account):
    await make_account()

    with pytest.raises(ValidationError):
        await receipt(db, "10", payment="Barter")
    assert await peek_next_receipt_no(db) == 1000


def test_adjustment_needs_exactly_one_side():
    with pytest.raises(SchemaValidationError):
        AdjustmentCreate(account_code="ACME", debit_amount=Decimal("5"), credit_amount=Decimal("5"))
    with pytest.raises(SchemaValidationError):
        AdjustmentCreate(account_code="ACME")


async def test_statement_window_carries_opening_balance(db, make_account, book):
    await make_account(credit_limit="5000")
    await book("S1", basic="100", shipment_date=date(2024, 4, 20))
    await book("S2", basic="200", shipment_date=date(2024, 5, 5))
    await book("S3", basic="300", shipment_date=date(2024, 6, 5))

    statement = await get_statement(db, "ACME", from_date=date(2024, 5, 1), to_date=date(2024, 5, 31))

    assert statement.opening == Decimal("100.00")
    assert [row.entry.awb_no for row in statement.rows] == ["S2"]
    assert statement.closing == Decimal("300.00")
