from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.operator import get_operator
from app.utils.response import success_response, APIResponse

from app.schemas.operations.run_schemas import RunCreate, RunStatusUpdate, RunOut, RunSummary
from app.schemas.operations.manifest_schemas import ManifestOut
from app.services.operations.run_service import (
    create_run,
    get_run_details,
    update_run_status,
    get_run_summary,
)
from app.services.operations.manifest_service import create_manifest, get_manifest

router = APIRouter(
    prefix="/runs",
    tags=["Runs"],
)


@router.post(
    "",
    response_model=APIResponse[RunOut],
    status_code=201,
)
async def create_run_api(
    payload: RunCreate,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    run = await create_run(db, payload, operator)
    return success_response("Run created successfully", run)


@router.get(
    "/{run_no}",
    response_model=APIResponse[RunOut],
)
async def get_run_api(
    run_no: str,
    db: AsyncSession = Depends(get_db),
):
    run = await get_run_details(db, run_no)
    return success_response("Run retrieved successfully", run)


@router.post(
    "/{run_no}/status",
    response_model=APIResponse[RunOut],
)
async def update_run_status_api(
    run_no: str,
    payload: RunStatusUpdate,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    run = await update_run_status(db, run_no, payload, operator)
    return success_response("Run status updated", run)


@router.get(
    "/{run_no}/summary",
    response_model=APIResponse[RunSummary],
)
async def run_summary_api(
    run_no: str,
    db: AsyncSession = Depends(get_db),
):
    summary = await get_run_summary(db, run_no)
    return success_response("Run summary retrieved", summary)


@router.post(
    "/{run_no}/manifest",
    response_model=APIResponse[ManifestOut],
)
async def create_manifest_api(
    run_no: str,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    manifest = await create_manifest(db, run_no, operator)
    return success_response("Manifest issued", manifest)


@router.get(
    "/{run_no}/manifest",
    response_model=APIResponse[ManifestOut],
)
async def get_manifest_api(
    run_no: str,
    db: AsyncSession = Depends(get_db),
):
    manifest = await get_manifest(db, run_no)
    return success_response("Manifest retrieved", manifest)
