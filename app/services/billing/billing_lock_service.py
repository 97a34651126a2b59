# app/services/billing/billing_lock_service.py
"""Billing lock gate and invoice creation.

A shipment is billable when ``billing_locked and not is_billed`` and it is not
held for credit. Invoices are cut from the stored per-shipment amounts; no
tariff is recomputed here.
"""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update, and_, or_, not_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.constants.payment_types import CREDIT_LIMIT_HOLD_REASON
from app.core.config import DEFAULT_BRANCH
from app.core.exceptions import AppException, ConflictError, ValidationError
from app.models.billing.invoice_models import Invoice, InvoiceLine
from app.models.enums.invoice_status import InvoiceStatus
from app.models.masters.customer_account_models import CustomerAccount
from app.models.operations.shipment_models import Shipment
from app.schemas.billing.invoice_schemas import (
    BillingLockRequest,
    BillingLockResult,
    BillableLine,
    BillableSummary,
    InvoiceBundle,
    InvoiceOut,
    InvoiceTotals,
)
from app.services.billing.credit_control_service import get_account
from app.services.billing.sequence_service import next_invoice_sr_no, format_invoice_number
from app.services.external.notification_service import NotificationDispatcher, notify_safely
from app.utils.activity_helpers import emit_activity
from app.utils.decimal_utils import to_decimal, compute_round_off, ZERO
from app.utils.normalize import normalize_ref
from app.utils.weights import chargeable_weight

logger = logging.getLogger(__name__)


def _credit_held():
    return and_(
        Shipment.is_hold.is_(True),
        Shipment.hold_reason == CREDIT_LIMIT_HOLD_REASON,
    )


def billable_filter(account_code: str, from_date: date, to_date: date):
    return and_(
        Shipment.account_code == account_code,
        Shipment.shipment_date.between(from_date, to_date),
        Shipment.billing_locked.is_(True),
        Shipment.is_billed.is_(False),
        not_(_credit_held()),
    )


# =====================================================
# SUMMARY MATH
# =====================================================
def compute_totals(shipments: list[Shipment]) -> InvoiceTotals:
    def total(field: str) -> Decimal:
        return sum((to_decimal(getattr(s, field)) for s in shipments), ZERO)

    basic = total("basic_amt")
    discount = total("discount_amt")
    misc = total("misc_amt")
    fuel = total("fuel_amt")
    cgst = total("cgst_amt")
    sgst = total("sgst_amt")
    igst = total("igst_amt")

    raw_total = to_decimal(basic - discount + misc + fuel + cgst + sgst + igst)
    grand_total, round_off = compute_round_off(raw_total)

    return InvoiceTotals(
        total_awb=len(shipments),
        basic_amount=basic,
        discount_amount=discount,
        misc_amount=misc,
        fuel_amount=fuel,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        taxable_amount=total("total_amt"),
        raw_total=raw_total,
        round_off=round_off,
        grand_total=grand_total,
    )


def _line(s: Shipment) -> BillableLine:
    return BillableLine(
        awb_no=s.awb_no,
        shipment_date=s.shipment_date,
        destination=s.destination,
        pcs=s.pcs,
        chargeable_weight=chargeable_weight(s.actual_weight, s.volumetric_weight),
        basic_amt=s.basic_amt,
        discount_amt=s.discount_amt,
        misc_amt=s.misc_amt,
        fuel_amt=s.fuel_amt,
        cgst_amt=s.cgst_amt,
        sgst_amt=s.sgst_amt,
        igst_amt=s.igst_amt,
        total_amt=s.total_amt,
    )


# =====================================================
# LOCK FOR BILLING
# =====================================================
async def lock_for_billing(db: AsyncSession, payload: BillingLockRequest, actor: str) -> BillingLockResult:
    account = await get_account(db, payload.account_code)

    result = await db.execute(
        update(Shipment)
        .where(
            Shipment.account_code == account.account_code,
            Shipment.shipment_date.between(payload.from_date, payload.to_date),
            Shipment.is_billed.is_(False),
            Shipment.billing_locked.is_(False),
            not_(_credit_held()),
        )
        .values(billing_locked=True, updated_by=actor)
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount or 0

    await emit_activity(
        db,
        actor=actor,
        code=ActivityCode.LOCK_FOR_BILLING,
        reference=account.account_code,
        count=count,
        account_code=account.account_code,
        from_date=payload.from_date,
        to_date=payload.to_date,
    )
    await db.commit()

    logger.info(
        "Billing locked",
        extra={"account_code": account.account_code, "count": count},
    )
    return BillingLockResult(
        account_code=account.account_code,
        from_date=payload.from_date,
        to_date=payload.to_date,
        locked_count=count,
    )


async def _billable_shipments(db: AsyncSession, account_code: str, from_date: date, to_date: date) -> list[Shipment]:
    result = await db.execute(
        select(Shipment)
        .where(billable_filter(account_code, from_date, to_date))
        .order_by(Shipment.shipment_date, Shipment.awb_no)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_billable_summary(db: AsyncSession, account_code: str, from_date: date, to_date: date) -> BillableSummary:
    if from_date > to_date:
        raise ValidationError("from_date must be on or before to_date")
    account = await get_account(db, account_code)

    shipments = await _billable_shipments(db, account.account_code, from_date, to_date)
    return BillableSummary(
        account_code=account.account_code,
        from_date=from_date,
        to_date=to_date,
        totals=compute_totals(shipments),
        shipments=[_line(s) for s in shipments],
    )


# =====================================================
# CREATE INVOICES
# =====================================================
async def _resolve_bundle(db: AsyncSession, bundle: InvoiceBundle) -> tuple[CustomerAccount, list[Shipment]]:
    account = await get_account(db, bundle.account_code)
    eligible = await _billable_shipments(db, account.account_code, bundle.from_date, bundle.to_date)

    if bundle.awb_nos is None:
        return account, eligible

    by_awb = {s.awb_no: s for s in eligible}
    wanted = list(dict.fromkeys(normalize_ref(a) for a in bundle.awb_nos))
    missing = [a for a in wanted if a not in by_awb]
    if missing:
        raise ConflictError(
            "Some shipments are not billable (not locked, already billed, on hold or out of range)",
            ErrorCode.NOT_BILLABLE,
            details={"account_code": account.account_code, "awb_nos": missing},
        )
    return account, [by_awb[a] for a in wanted]


async def create_invoices(
    db: AsyncSession,
    bundles: list[InvoiceBundle],
    actor: str,
    *,
    notifier: NotificationDispatcher | None = None,
) -> tuple[list[InvoiceOut], list[str]]:
    # -------------------------
    # 1. Validate every bundle before writing anything
    # -------------------------
    resolved: list[tuple[InvoiceBundle, CustomerAccount, list[Shipment]]] = []
    seen: set[str] = set()
    for bundle in bundles:
        account, shipments = await _resolve_bundle(db, bundle)
        if not shipments:
            logger.info("Empty invoice bundle skipped", extra={"account_code": account.account_code})
            continue

        clash = [s.awb_no for s in shipments if s.awb_no in seen]
        if clash:
            raise ValidationError(
                "A shipment appears in more than one invoice bundle",
                details={"awb_nos": clash},
            )
        seen.update(s.awb_no for s in shipments)
        resolved.append((bundle, account, shipments))

    # -------------------------
    # 2. Apply: number, persist, mark; one commit for all
    # -------------------------
    invoices: list[Invoice] = []
    try:
        for bundle, account, shipments in resolved:
            sr_no = await next_invoice_sr_no(db)
            branch = normalize_ref(bundle.branch) or account.branch or DEFAULT_BRANCH
            invoice_date = bundle.invoice_date or date.today()
            invoice_number = format_invoice_number(branch, invoice_date, sr_no)
            totals = compute_totals(shipments)

            invoice = Invoice(
                invoice_sr_no=sr_no,
                invoice_number=invoice_number,
                branch=branch,
                invoice_date=invoice_date,
                account_code=account.account_code,
                from_date=bundle.from_date,
                to_date=bundle.to_date,
                status=InvoiceStatus.issued,
                customer_snapshot={
                    "account_code": account.account_code,
                    "name": account.name,
                    "email": account.email,
                    "branch": account.branch,
                },
                created_by=actor,
                updated_by=actor,
                **totals.model_dump(),
            )
            invoice.lines.extend(
                InvoiceLine(is_active=True, **_line(s).model_dump())
                for s in shipments
            )
            db.add(invoice)

            awb_nos = [s.awb_no for s in shipments]
            result = await db.execute(
                update(Shipment)
                .where(
                    Shipment.awb_no.in_(awb_nos),
                    Shipment.is_billed.is_(False),
                    Shipment.billing_locked.is_(True),
                )
                .values(is_billed=True, invoice_number=invoice_number, updated_by=actor)
                .execution_options(synchronize_session=False)
            )
            if (result.rowcount or 0) != len(awb_nos):
                raise ConflictError(
                    "Shipments were billed concurrently",
                    ErrorCode.BILLING_CONFLICT,
                    details={"invoice_number": invoice_number},
                )

            await emit_activity(
                db,
                actor=actor,
                code=ActivityCode.CREATE_INVOICE,
                reference=invoice_number,
                invoice_number=invoice_number,
                account_code=account.account_code,
                grand_total=totals.grand_total,
            )
            invoices.append(invoice)

        await db.flush()
        await db.commit()

    except AppException:
        await db.rollback()
        raise

    except IntegrityError:
        await db.rollback()
        raise ConflictError("Invoice or shipment already billed", ErrorCode.BILLING_CONFLICT)

    outputs: list[InvoiceOut] = []
    warnings: list[str] = []
    for invoice in invoices:
        await db.refresh(invoice)
        out = InvoiceOut.model_validate(invoice)
        outputs.append(out)
        logger.info(
            "Invoice created",
            extra={"invoice_number": out.invoice_number, "total_awb": out.total_awb},
        )
        warnings += await notify_safely(
            notifier,
            "invoice.created",
            {
                "invoice_number": out.invoice_number,
                "account_code": out.account_code,
                "grand_total": str(out.grand_total),
            },
        )

    return outputs, warnings
