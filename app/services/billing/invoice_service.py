from datetime import datetime, timezone
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, update

from app.models.billing.invoice_models import Invoice
from app.models.enums.invoice_status import InvoiceStatus
from app.models.operations.shipment_models import Shipment

from app.schemas.billing.invoice_schemas import (
    InvoiceOut,
    InvoiceListData,
    InvoiceListItem,
)

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode

from app.core.exceptions import AppException, ConflictError, NotFoundError
from app.utils.activity_helpers import emit_activity
from app.utils.normalize import normalize_ref

logger = logging.getLogger(__name__)


async def _get_invoice(db: AsyncSession, invoice_id: int, *, for_update: bool = False) -> Invoice:
    stmt = select(Invoice).where(Invoice.id == invoice_id)
    if for_update:
        stmt = stmt.with_for_update()
    invoice = (await db.execute(stmt)).scalar_one_or_none()
    if not invoice:
        raise NotFoundError("Invoice not found", ErrorCode.INVOICE_NOT_FOUND)
    return invoice


async def get_invoice(db: AsyncSession, invoice_id: int) -> InvoiceOut:
    invoice = await _get_invoice(db, invoice_id)
    await db.refresh(invoice)
    return InvoiceOut.model_validate(invoice)


async def get_invoice_by_number(db: AsyncSession, invoice_number: str) -> InvoiceOut:
    invoice = (
        await db.execute(select(Invoice).where(Invoice.invoice_number == invoice_number))
    ).scalar_one_or_none()
    if not invoice:
        raise NotFoundError("Invoice not found", ErrorCode.INVOICE_NOT_FOUND)
    await db.refresh(invoice)
    return InvoiceOut.model_validate(invoice)


async def list_invoices(
    db: AsyncSession,
    *,
    account_code: str | None = None,
    status: InvoiceStatus | None = None,
    page: int = 1,
    page_size: int = 20,
) -> InvoiceListData:
    filters = []
    if account_code:
        filters.append(Invoice.account_code == normalize_ref(account_code))
    if status:
        filters.append(Invoice.status == status)

    total = await db.scalar(select(func.count(Invoice.id)).where(*filters))

    result = await db.execute(
        select(Invoice)
        .where(*filters)
        .order_by(desc(Invoice.invoice_sr_no))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return InvoiceListData(
        total=total or 0,
        items=[InvoiceListItem.model_validate(i) for i in result.scalars().all()],
    )


async def cancel_invoice(db: AsyncSession, invoice_id: int, reason: str, actor: str) -> InvoiceOut:
    """Un-bill the invoice's shipments and drop their billing lock.

    The number is never reissued; the shipments need a fresh lock before they
    can be invoiced again.
    """
    invoice = await _get_invoice(db, invoice_id, for_update=True)

    if invoice.status == InvoiceStatus.cancelled:
        raise ConflictError("Invoice already cancelled", ErrorCode.CONFLICT)

    try:
        await db.refresh(invoice, attribute_names=["lines"])
        awb_nos = [line.awb_no for line in invoice.lines if line.is_active]

        for line in invoice.lines:
            line.is_active = False

        if awb_nos:
            await db.execute(
                update(Shipment)
                .where(
                    Shipment.awb_no.in_(awb_nos),
                    Shipment.invoice_number == invoice.invoice_number,
                )
                .values(is_billed=False, invoice_number=None, billing_locked=False, updated_by=actor)
                .execution_options(synchronize_session=False)
            )

        invoice.status = InvoiceStatus.cancelled
        invoice.cancelled_at = datetime.now(timezone.utc)
        invoice.cancelled_by = actor
        invoice.cancel_reason = reason
        invoice.updated_by = actor

        await emit_activity(
            db,
            actor=actor,
            code=ActivityCode.CANCEL_INVOICE,
            reference=invoice.invoice_number,
            invoice_number=invoice.invoice_number,
        )
        await db.flush()
        await db.commit()

    except AppException:
        await db.rollback()
        raise

    logger.info("Invoice cancelled", extra={"invoice_number": invoice.invoice_number})
    await db.refresh(invoice)
    return InvoiceOut.model_validate(invoice)
