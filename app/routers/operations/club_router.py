from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.operator import get_operator
from app.utils.response import success_response, APIResponse

from app.schemas.operations.club_schemas import ClubAttach, ClubOut, ClubableCheck
from app.services.operations.club_service import (
    attach_to_club,
    detach_from_club,
    lock_club,
    delete_club,
    get_club_details,
    validate_awb_for_club,
)

router = APIRouter(
    prefix="/clubs",
    tags=["Clubbing"],
)


@router.get(
    "/validate-awb/{awb_no}",
    response_model=APIResponse[ClubableCheck],
)
async def validate_awb_api(
    awb_no: str,
    db: AsyncSession = Depends(get_db),
):
    check = await validate_awb_for_club(db, awb_no)
    return success_response("AWB validated", check)


@router.post(
    "/attach",
    response_model=APIResponse[ClubOut],
)
async def attach_to_club_api(
    payload: ClubAttach,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    club = await attach_to_club(db, payload, operator)
    return success_response("Shipment clubbed", club)


@router.post(
    "/detach/{awb_no}",
    response_model=APIResponse[ClubOut],
)
async def detach_from_club_api(
    awb_no: str,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    club = await detach_from_club(db, awb_no, operator)
    return success_response("Shipment removed from club", club)


@router.post(
    "/{club_no}/lock",
    response_model=APIResponse[ClubOut],
)
async def lock_club_api(
    club_no: str,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    club, warnings = await lock_club(db, club_no, operator)
    return success_response("Club locked", club, warnings)


@router.get(
    "/{club_no}",
    response_model=APIResponse[ClubOut],
)
async def get_club_api(
    club_no: str,
    db: AsyncSession = Depends(get_db),
):
    club = await get_club_details(db, club_no)
    return success_response("Club retrieved successfully", club)


@router.delete(
    "/{club_no}",
    response_model=APIResponse[None],
)
async def delete_club_api(
    club_no: str,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    await delete_club(db, club_no, operator)
    return success_response("Club deleted")
