from datetime import date
from decimal import Decimal

import pytest

from app.constants.error_codes import ErrorCode
from app.core.exceptions import ConflictError, ValidationError
from app.models.enums.invoice_status import InvoiceStatus
from app.schemas.billing.invoice_schemas import BillingLockRequest, InvoiceBundle
from app.schemas.operations.shipment_schemas import ShipmentTotalCorrection
from app.services.billing.billing_lock_service import (
    lock_for_billing,
    get_billable_summary,
    create_invoices,
)
from app.services.billing.invoice_service import cancel_invoice, get_invoice_by_number
from app.services.billing.reconciliation_service import reconcile
from app.services.billing.sequence_service import peek_value, INVOICE_SEQUENCE
from app.services.operations.shipment_service import correct_shipment_total, get_shipment_details

FROM, TO = date(2024, 5, 1), date(2024, 5, 31)
INVOICE_DATE = date(2024, 6, 1)


async def lock(db, code="ACME"):
    return await lock_for_billing(
        db, BillingLockRequest(account_code=code, from_date=FROM, to_date=TO), "tester"
    )


def bundle(code="ACME", **kwargs):
    return InvoiceBundle(account_code=code, from_date=FROM, to_date=TO, invoice_date=INVOICE_DATE, **kwargs)


@pytest.fixture
async def billable(make_account, book):
    await make_account("ACME", branch="DEL")
    await make_account("BETA", branch="BOM")
    for i in range(1, 6):
        await book(f"A{i}", basic="100", cgst_amt=Decimal("9"), sgst_amt=Decimal("9"))
    await book("B1", account_code="BETA", basic="250")
    # outside the billing window
    await book("A9", basic="100", shipment_date=date(2024, 6, 15))


async def test_invoice_takes_next_serial_and_bills_every_shipment(db, billable, notifier):
    await lock(db, "BETA")
    first, _ = await create_invoices(db, [bundle("BETA")], "tester", notifier=notifier)

    result = await lock(db)
    assert result.locked_count == 5
    summary = await get_billable_summary(db, "ACME", FROM, TO)
    assert summary.totals.total_awb == 5

    invoices, warnings = await create_invoices(db, [bundle()], "tester", notifier=notifier)

    assert warnings == []
    assert len(invoices) == 1
    invoice = invoices[0]
    assert invoice.invoice_sr_no == first[0].invoice_sr_no + 1
    assert invoice.invoice_number == f"DEL/20240601/{invoice.invoice_sr_no:03d}"
    assert invoice.total_awb == 5
    assert invoice.grand_total == Decimal("590.00")
    assert sorted(line.awb_no for line in invoice.lines) == ["A1", "A2", "A3", "A4", "A5"]

    shipment = await get_shipment_details(db, "A3")
    assert shipment.is_billed is True
    assert shipment.invoice_number == invoice.invoice_number

    after = await get_billable_summary(db, "ACME", FROM, TO)
    assert after.totals.total_awb == 0
    assert after.shipments == []
    assert ("invoice.created" in [e for e, _ in notifier.events])


async def test_round_off_reconciles_with_raw_total(db, make_account, book, notifier):
    await make_account()
    await book("R1", basic="100.40")
    await book("R2", basic="50.25")
    await lock(db)

    invoices, _ = await create_invoices(db, [bundle()], "tester", notifier=notifier)
    invoice = invoices[0]

    assert invoice.raw_total == Decimal("150.65")
    assert invoice.grand_total == Decimal("151.00")
    assert invoice.round_off == Decimal("0.35")
    assert invoice.grand_total - invoice.round_off == invoice.raw_total


async def test_credit_held_shipments_are_not_locked(db, make_account, book):
    await make_account(credit_limit="150")
    await book("H1", basic="100")
    held = await book("H2", basic="100")
    assert held.is_hold is True

    result = await lock(db)

    assert result.locked_count == 1
    assert (await get_shipment_details(db, "H2")).billing_locked is False


async def test_failing_bundle_writes_nothing(db, billable, notifier):
    await lock(db)
    await lock(db, "BETA")

    with pytest.raises(ConflictError) as exc:
        await create_invoices(
            db,
            [bundle(), bundle("BETA", awb_nos=["B1", "NOPE"])],
            "tester",
            notifier=notifier,
        )
    assert exc.value.error_code == ErrorCode.NOT_BILLABLE
    assert exc.value.details["awb_nos"] == ["NOPE"]

    assert await peek_value(db, INVOICE_SEQUENCE) == 0
    assert (await get_shipment_details(db, "A1")).is_billed is False
    assert (await get_billable_summary(db, "ACME", FROM, TO)).totals.total_awb == 5


async def test_shipment_cannot_appear_in_two_bundles(db, billable, notifier):
    await lock(db)

    with pytest.raises(ValidationError):
        await create_invoices(
            db,
            [bundle(awb_nos=["A1", "A2"]), bundle(awb_nos=["A2", "A3"])],
            "tester",
            notifier=notifier,
        )
    assert (await get_shipment_details(db, "A2")).is_billed is False


async def test_empty_bundle_is_skipped(db, billable, notifier):
    invoices, _ = await create_invoices(db, [bundle()], "tester", notifier=notifier)

    assert invoices == []
    assert await peek_value(db, INVOICE_SEQUENCE) == 0


async def test_locked_and_billed_shipments_are_read_only(db, billable, notifier):
    await lock(db)
    correction = ShipmentTotalCorrection(basic_amt=Decimal("1"))

    with pytest.raises(ConflictError) as exc:
        await correct_shipment_total(db, "A1", correction, "tester")
    assert exc.value.error_code == ErrorCode.SHIPMENT_LOCKED

    await create_invoices(db, [bundle()], "tester", notifier=notifier)
    with pytest.raises(ConflictError) as exc:
        await correct_shipment_total(db, "A1", correction, "tester")
    assert exc.value.error_code == ErrorCode.ALREADY_BILLED


async def test_cancelled_invoice_frees_shipments_without_reusing_number(db, billable, notifier):
    await lock(db)
    (original,), _ = await create_invoices(db, [bundle()], "tester", notifier=notifier)

    cancelled = await cancel_invoice(db, original.id, "Wrong period", "tester")
    assert cancelled.status == InvoiceStatus.cancelled
    assert all(not line.is_active for line in cancelled.lines)
    freed = await get_shipment_details(db, "A1")
    assert freed.is_billed is False
    assert freed.billing_locked is False

    with pytest.raises(ConflictError):
        await cancel_invoice(db, original.id, "again", "tester")

    # nothing is billable until the shipments are locked again
    assert await create_invoices(db, [bundle()], "tester", notifier=notifier) == ([], [])
    await lock(db)

    (reissued,), _ = await create_invoices(db, [bundle()], "tester", notifier=notifier)
    assert reissued.invoice_sr_no == original.invoice_sr_no + 1
    assert reissued.invoice_number != original.invoice_number
    assert (await get_invoice_by_number(db, original.invoice_number)).status == InvoiceStatus.cancelled

    report = await reconcile(db)
    assert report.ok is True
    assert report.checked_billed_shipments == 5


async def test_cancelled_invoice_shipments_can_be_corrected(db, billable, notifier):
    await lock(db)
    (original,), _ = await create_invoices(db, [bundle(awb_nos=["A1"])], "tester", notifier=notifier)
    await cancel_invoice(db, original.id, "Wrong rate", "tester")

    corrected = await correct_shipment_total(
        db, "A1", ShipmentTotalCorrection(basic_amt=Decimal("150")), "tester"
    )

    assert corrected.total_amt == Decimal("150.00")
    assert corrected.billing_locked is False
