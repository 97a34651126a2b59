from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.operator import get_operator
from app.utils.response import success_response, APIResponse

from app.schemas.operations.offload_schemas import AwbOffloadRequest, RunOffloadRequest, OffloadRecordOut
from app.services.operations.offload_service import offload_awb, offload_run, list_offloads

router = APIRouter(
    prefix="/offloads",
    tags=["Offload"],
)


@router.post(
    "/awb",
    response_model=APIResponse[OffloadRecordOut],
)
async def offload_awb_api(
    payload: AwbOffloadRequest,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    record, warnings = await offload_awb(db, payload, operator)
    return success_response("Shipment offloaded", record, warnings)


@router.post(
    "/run",
    response_model=APIResponse[List[OffloadRecordOut]],
)
async def offload_run_api(
    payload: RunOffloadRequest,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    records, warnings = await offload_run(db, payload, operator)
    return success_response(f"{len(records)} shipment(s) offloaded", records, warnings)


@router.get(
    "",
    response_model=APIResponse[List[OffloadRecordOut]],
)
async def list_offloads_api(
    db: AsyncSession = Depends(get_db),
    run_no: Optional[str] = Query(None),
    awb_no: Optional[str] = Query(None),
):
    records = await list_offloads(db, run_no=run_no, awb_no=awb_no)
    return success_response("Offload records retrieved", records)
