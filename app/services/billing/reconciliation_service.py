# app/services/billing/reconciliation_service.py
"""Detects drift between independently maintained records. Never repairs."""
import logging

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.billing.invoice_models import Invoice, InvoiceLine
from app.models.enums.invoice_status import InvoiceStatus
from app.models.masters.customer_account_models import CustomerAccount
from app.models.operations.shipment_models import Shipment
from app.schemas.billing.ledger_schemas import BalanceDrift, BillingMismatch, ReconciliationReport
from app.services.billing.ledger_service import ledger_outstanding_by_account
from app.utils.decimal_utils import to_decimal, TWOPLACES, ZERO

logger = logging.getLogger(__name__)


async def _balance_drifts(db: AsyncSession) -> tuple[int, list[BalanceDrift]]:
    outstanding = await ledger_outstanding_by_account(db)
    accounts = (
        await db.execute(
            select(CustomerAccount.account_code, CustomerAccount.left_over_balance)
            .where(CustomerAccount.is_active.is_(True))
        )
    ).all()

    drifts = []
    for code, balance in accounts:
        ledger = outstanding.get(code, ZERO)
        difference = to_decimal(balance) - ledger
        if abs(difference) > TWOPLACES:
            drifts.append(
                BalanceDrift(
                    account_code=code,
                    left_over_balance=to_decimal(balance),
                    ledger_outstanding=ledger,
                    difference=difference,
                )
            )
    return len(accounts), drifts


async def _billing_mismatches(db: AsyncSession) -> tuple[int, list[BillingMismatch]]:
    matches = (
        select(func.count(InvoiceLine.id))
        .join(Invoice, Invoice.id == InvoiceLine.invoice_id)
        .where(
            and_(
                InvoiceLine.awb_no == Shipment.awb_no,
                InvoiceLine.is_active.is_(True),
                Invoice.invoice_number == Shipment.invoice_number,
                Invoice.status == InvoiceStatus.issued,
            )
        )
        .correlate(Shipment)
        .scalar_subquery()
    )

    rows = (
        await db.execute(
            select(Shipment.awb_no, Shipment.invoice_number, matches.label("matching"))
            .where(Shipment.is_billed.is_(True))
        )
    ).all()

    mismatches = [
        BillingMismatch(awb_no=awb, invoice_number=number, matching_lines=matching)
        for awb, number, matching in rows
        if not number or matching != 1
    ]
    return len(rows), mismatches


async def reconcile(db: AsyncSession) -> ReconciliationReport:
    checked_accounts, drifts = await _balance_drifts(db)
    checked_billed, mismatches = await _billing_mismatches(db)

    for d in drifts:
        logger.warning(
            "Balance drift detected",
            extra={"account_code": d.account_code, "difference": str(d.difference)},
        )
    for m in mismatches:
        logger.warning(
            "Billed shipment does not resolve to exactly one invoice",
            extra={"awb_no": m.awb_no, "invoice_number": m.invoice_number},
        )

    report = ReconciliationReport(
        ok=not drifts and not mismatches,
        checked_accounts=checked_accounts,
        checked_billed_shipments=checked_billed,
        balance_drifts=drifts,
        billing_mismatches=mismatches,
    )
    logger.info(
        "Reconciliation finished",
        extra={"ok": report.ok, "accounts": checked_accounts, "billed": checked_billed},
    )
    return report
