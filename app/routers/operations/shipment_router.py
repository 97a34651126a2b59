from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.shipment_status import ShipmentStatus
from app.utils.operator import get_operator
from app.utils.response import success_response, APIResponse

from app.schemas.operations.shipment_schemas import (
    ShipmentCreate,
    ShipmentTotalCorrection,
    ShipmentOut,
    ShipmentListData,
    HoldEvaluation,
    DataLockRequest,
    DataLockResult,
)
from app.services.operations.shipment_service import (
    book_shipment,
    get_shipment_details,
    list_shipments,
    evaluate_hold_for,
    reevaluate_hold,
    correct_shipment_total,
    auto_calculate,
    set_data_lock,
)
from app.services.operations.manifest_service import mark_delivered

router = APIRouter(
    prefix="/shipments",
    tags=["Shipments"],
)


@router.post(
    "",
    response_model=APIResponse[ShipmentOut],
    status_code=201,
)
async def book_shipment_api(
    payload: ShipmentCreate,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    shipment, warnings = await book_shipment(db, payload, operator)
    message = "Shipment booked and put on hold" if shipment.is_hold else "Shipment booked successfully"
    return success_response(message, shipment, warnings)


@router.get(
    "",
    response_model=APIResponse[ShipmentListData],
)
async def list_shipments_api(
    db: AsyncSession = Depends(get_db),
    account_code: Optional[str] = Query(None),
    status: Optional[ShipmentStatus] = Query(None),
    run_no: Optional[str] = Query(None),
    is_hold: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_shipments(
        db,
        account_code=account_code,
        status=status,
        run_no=run_no,
        is_hold=is_hold,
        page=page,
        page_size=page_size,
    )
    return success_response("Shipments retrieved successfully", data)


@router.post(
    "/data-lock",
    response_model=APIResponse[DataLockResult],
)
async def data_lock_api(
    payload: DataLockRequest,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    result = await set_data_lock(db, payload, operator)
    return success_response("Data lock updated", result)


@router.get(
    "/{awb_no}",
    response_model=APIResponse[ShipmentOut],
)
async def get_shipment_api(
    awb_no: str,
    db: AsyncSession = Depends(get_db),
):
    shipment = await get_shipment_details(db, awb_no)
    return success_response("Shipment retrieved successfully", shipment)


@router.get(
    "/{awb_no}/hold-evaluation",
    response_model=APIResponse[HoldEvaluation],
)
async def evaluate_hold_api(
    awb_no: str,
    db: AsyncSession = Depends(get_db),
):
    evaluation = await evaluate_hold_for(db, awb_no)
    return success_response("Hold evaluated", evaluation)


@router.post(
    "/{awb_no}/reevaluate-hold",
    response_model=APIResponse[ShipmentOut],
)
async def reevaluate_hold_api(
    awb_no: str,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    shipment = await reevaluate_hold(db, awb_no, operator)
    return success_response("Hold re-evaluated", shipment)


@router.put(
    "/{awb_no}/total",
    response_model=APIResponse[ShipmentOut],
)
async def correct_total_api(
    awb_no: str,
    payload: ShipmentTotalCorrection,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    shipment = await correct_shipment_total(db, awb_no, payload, operator)
    return success_response("Shipment total corrected", shipment)


@router.post(
    "/{awb_no}/auto-calculate",
    response_model=APIResponse[ShipmentOut],
)
async def auto_calculate_api(
    awb_no: str,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    shipment, warnings = await auto_calculate(db, awb_no, operator)
    message = "Rate lookup unavailable, shipment unchanged" if warnings else "Shipment re-calculated"
    return success_response(message, shipment, warnings)


@router.post(
    "/{awb_no}/deliver",
    response_model=APIResponse[ShipmentOut],
)
async def mark_delivered_api(
    awb_no: str,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    shipment = await mark_delivered(db, awb_no, operator)
    return success_response("Shipment delivered", shipment)
