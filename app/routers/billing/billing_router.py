from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.invoice_status import InvoiceStatus
from app.utils.operator import get_operator
from app.utils.response import success_response, APIResponse
from app.utils.pdf_generators.invoice_pdf import render_invoice_pdf

from app.schemas.billing.invoice_schemas import (
    BillingLockRequest,
    BillingLockResult,
    BillableSummary,
    InvoiceCreateRequest,
    InvoiceCancel,
    InvoiceOut,
    InvoiceListData,
)
from app.services.billing.billing_lock_service import (
    lock_for_billing,
    get_billable_summary,
    create_invoices,
)
from app.services.billing.invoice_service import (
    get_invoice,
    get_invoice_by_number,
    list_invoices,
    cancel_invoice,
)
from app.services.masters.customer_account_service import get_account_details

router = APIRouter(
    prefix="/billing",
    tags=["Billing"],
)


@router.post(
    "/lock",
    response_model=APIResponse[BillingLockResult],
)
async def lock_for_billing_api(
    payload: BillingLockRequest,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    result = await lock_for_billing(db, payload, operator)
    return success_response(f"{result.locked_count} shipment(s) locked for billing", result)


@router.get(
    "/summary",
    response_model=APIResponse[BillableSummary],
)
async def billable_summary_api(
    account_code: str = Query(...),
    from_date: date = Query(...),
    to_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    summary = await get_billable_summary(db, account_code, from_date, to_date)
    return success_response("Billable summary retrieved", summary)


@router.post(
    "/invoices",
    response_model=APIResponse[List[InvoiceOut]],
    status_code=201,
)
async def create_invoices_api(
    payload: InvoiceCreateRequest,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    invoices, warnings = await create_invoices(db, payload.invoices, operator)
    return success_response(f"{len(invoices)} invoice(s) created", invoices, warnings)


@router.get(
    "/invoices",
    response_model=APIResponse[InvoiceListData],
)
async def list_invoices_api(
    db: AsyncSession = Depends(get_db),
    account_code: Optional[str] = Query(None),
    status: Optional[InvoiceStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_invoices(
        db,
        account_code=account_code,
        status=status,
        page=page,
        page_size=page_size,
    )
    return success_response("Invoices retrieved successfully", data)


@router.get(
    "/invoices/by-number/{invoice_number}",
    response_model=APIResponse[InvoiceOut],
)
async def get_invoice_by_number_api(
    invoice_number: str,
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_invoice_by_number(db, invoice_number)
    return success_response("Invoice retrieved successfully", invoice)


@router.get(
    "/invoices/{invoice_id}",
    response_model=APIResponse[InvoiceOut],
)
async def get_invoice_api(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_invoice(db, invoice_id)
    return success_response("Invoice retrieved successfully", invoice)


@router.get("/invoices/{invoice_id}/pdf")
async def invoice_pdf_api(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_invoice(db, invoice_id)
    account = await get_account_details(db, invoice.account_code)
    content = render_invoice_pdf(invoice, account.name)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{invoice.invoice_number}.pdf"'},
    )


@router.post(
    "/invoices/{invoice_id}/cancel",
    response_model=APIResponse[InvoiceOut],
)
async def cancel_invoice_api(
    invoice_id: int,
    payload: InvoiceCancel,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    invoice = await cancel_invoice(db, invoice_id, payload.reason, operator)
    return success_response("Invoice cancelled", invoice)
