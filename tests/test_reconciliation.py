from decimal import Decimal

from sqlalchemy import update

from app.models.masters.customer_account_models import CustomerAccount
from app.models.operations.shipment_models import Shipment
from app.services.billing.reconciliation_service import reconcile
from app.services.masters.customer_account_service import get_account_details


async def test_consistent_books_reconcile_cleanly(db, make_account, book):
    await make_account(opening_balance="120")
    await book("K1", basic="80")

    report = await reconcile(db)

    assert report.ok is True
    assert report.checked_accounts == 1
    assert report.balance_drifts == []


async def test_balance_drift_is_reported_not_repaired(db, make_account, book):
    await make_account()
    await book("K2", basic="80")
    await db.execute(
        update(CustomerAccount)
        .where(CustomerAccount.account_code == "ACME")
        .values(left_over_balance=Decimal("95.00"))
    )
    await db.commit()

    report = await reconcile(db)

    assert report.ok is False
    drift = report.balance_drifts[0]
    assert drift.account_code == "ACME"
    assert drift.ledger_outstanding == Decimal("80.00")
    assert drift.difference == Decimal("15.00")
    assert (await get_account_details(db, "ACME")).left_over_balance == Decimal("95.00")


async def test_billed_shipment_without_invoice_line_is_reported(db, make_account, book):
    await make_account()
    await book("K3")
    await db.execute(
        update(Shipment)
        .where(Shipment.awb_no == "K3")
        .values(is_billed=True, invoice_number="DEL/20240601/999")
    )
    await db.commit()

    report = await reconcile(db)

    assert report.ok is False
    assert report.checked_billed_shipments == 1
    mismatch = report.billing_mismatches[0]
    assert (mismatch.awb_no, mismatch.matching_lines) == ("K3", 0)
