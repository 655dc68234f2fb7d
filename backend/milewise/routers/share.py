"""Public share router — unauthenticated read of published plans."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from milewise.database import get_db
from milewise.dependencies import get_request_id
from milewise.schemas.saved_plan import ErrorResponse, GetSavedPlanResponse
from milewise.services.planner.saved_plans import saved_plans_service

router = APIRouter()


@router.get(
    "/plans/{token}",
    response_model=GetSavedPlanResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_shared_plan(
    token: str,
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
):
    return await saved_plans_service.get_plan_by_share_token(db, token, request_id=request_id)
