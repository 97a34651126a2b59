from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.operator import get_operator
from app.utils.response import success_response, APIResponse

from app.schemas.billing.ledger_schemas import (
    ReceiptCreate,
    AdjustmentCreate,
    LedgerEntryOut,
    LedgerSummary,
    LedgerStatement,
    ReconciliationReport,
)
from app.services.billing.ledger_service import (
    get_ledger_summary,
    get_statement,
    record_receipt,
    record_adjustment,
    peek_next_receipt_no,
)
from app.services.billing.reconciliation_service import reconcile

router = APIRouter(
    prefix="/ledger",
    tags=["Ledger"],
)


@router.get(
    "/next-receipt-no",
    response_model=APIResponse[int],
)
async def next_receipt_no_api(
    db: AsyncSession = Depends(get_db),
):
    receipt_no = await peek_next_receipt_no(db)
    return success_response("Next receipt number", receipt_no)


@router.post(
    "/receipts",
    response_model=APIResponse[LedgerEntryOut],
    status_code=201,
)
async def record_receipt_api(
    payload: ReceiptCreate,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    entry = await record_receipt(db, payload, operator)
    return success_response("Receipt recorded", entry)


@router.post(
    "/adjustments",
    response_model=APIResponse[LedgerEntryOut],
    status_code=201,
)
async def record_adjustment_api(
    payload: AdjustmentCreate,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    entry = await record_adjustment(db, payload, operator)
    return success_response("Adjustment recorded", entry)


@router.get(
    "/reconcile",
    response_model=APIResponse[ReconciliationReport],
)
async def reconcile_api(
    db: AsyncSession = Depends(get_db),
):
    report = await reconcile(db)
    message = "Ledger consistent" if report.ok else "Ledger inconsistencies found"
    return success_response(message, report)


@router.get(
    "/{account_code}/summary",
    response_model=APIResponse[LedgerSummary],
)
async def ledger_summary_api(
    account_code: str,
    db: AsyncSession = Depends(get_db),
):
    summary = await get_ledger_summary(db, account_code)
    return success_response("Ledger summary retrieved", summary)


@router.get(
    "/{account_code}/statement",
    response_model=APIResponse[LedgerStatement],
)
async def ledger_statement_api(
    account_code: str,
    db: AsyncSession = Depends(get_db),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    statement = await get_statement(db, account_code, from_date=from_date, to_date=to_date)
    return success_response("Ledger statement retrieved", statement)
