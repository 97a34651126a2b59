from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.operator import get_operator
from app.utils.response import success_response, APIResponse

from app.schemas.operations.bag_schemas import BagAssign, BagOut
from app.services.operations.bag_service import assign_to_bag, finalize_bag, get_bag_details

router = APIRouter(
    prefix="/bags",
    tags=["Bagging"],
)


@router.post(
    "/assign",
    response_model=APIResponse[BagOut],
)
async def assign_to_bag_api(
    payload: BagAssign,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    bag = await assign_to_bag(db, payload, operator)
    return success_response("Shipment bagged", bag)


@router.post(
    "/{bag_no}/finalize",
    response_model=APIResponse[BagOut],
)
async def finalize_bag_api(
    bag_no: str,
    db: AsyncSession = Depends(get_db),
    operator: str = Depends(get_operator),
):
    bag, warnings = await finalize_bag(db, bag_no, operator)
    return success_response("Bag finalized", bag, warnings)


@router.get(
    "/{bag_no}",
    response_model=APIResponse[BagOut],
)
async def get_bag_api(
    bag_no: str,
    db: AsyncSession = Depends(get_db),
):
    bag = await get_bag_details(db, bag_no)
    return success_response("Bag retrieved successfully", bag)
