"""Planner router — cache-only trip planning and saved plans."""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from milewise.database import get_db
from milewise.dependencies import get_optional_session_id, get_request_id, get_session_id
from milewise.schemas.planner import MissingField, PlanNeedsInput, PlanResponse, TripQuery
from milewise.schemas.saved_plan import (
    ErrorResponse,
    GetSavedPlanResponse,
    ListSavedPlansResponse,
    SavedPlanResponse,
    SavePlanResult,
)
from milewise.services.planner.plan_service import plan_service
from milewise.services.planner.saved_plans import saved_plans_service

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("/plan", response_model=PlanResponse)
async def plan_trip(
    body: Any = Body(None),
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
    session_id: str | None = Depends(get_optional_session_id),
):
    """Plan a trip from cached inventory. Always 200; the `type` field carries the outcome."""
    try:
        query = TripQuery.model_validate(body)
    except ValidationError as e:
        missing = [
            MissingField(
                path=".".join(str(part) for part in issue["loc"]) or "root",
                reason=issue["msg"],
            )
            for issue in e.errors(include_url=False, include_context=False, include_input=False)
        ]
        logger.info(f"planner.plan.invalid_query request_id={request_id} issues={len(missing)}")
        return PlanNeedsInput(request_id=request_id, missing=missing)

    return await plan_service.plan(db, query, session_id, request_id=request_id)


@router.post("/plans", status_code=201, response_model=SavePlanResult, responses=ERROR_RESPONSES)
async def save_plan(
    body: Any = Body(None),
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
    session_id: str = Depends(get_session_id),
):
    """Save a ranked option, optionally publishing it with a share link."""
    return await saved_plans_service.save_plan(db, session_id, body, request_id=request_id)


@router.get("/plans", response_model=ListSavedPlansResponse, responses=ERROR_RESPONSES)
async def list_plans(
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
    session_id: str = Depends(get_session_id),
):
    """List the session's saved plans, newest first."""
    return await saved_plans_service.list_plans(db, session_id, request_id=request_id)


@router.get("/plans/{plan_id}", response_model=GetSavedPlanResponse, responses=ERROR_RESPONSES)
async def get_plan(
    plan_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
    session_id: str = Depends(get_session_id),
):
    """Get a saved plan with the current freshness of its cache."""
    return await saved_plans_service.get_plan(db, session_id, plan_id, request_id=request_id)


@router.post("/plans/{plan_id}/public", response_model=SavePlanResult, responses=ERROR_RESPONSES)
async def make_plan_public(
    plan_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
    session_id: str = Depends(get_session_id),
):
    """Publish a plan under a newly issued share token."""
    return await saved_plans_service.make_public(db, session_id, plan_id, request_id=request_id)


@router.post("/plans/{plan_id}/revoke", response_model=SavedPlanResponse, responses=ERROR_RESPONSES)
async def revoke_plan_share(
    plan_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id),
    session_id: str = Depends(get_session_id),
):
    """Make a plan private again and invalidate its share link."""
    return await saved_plans_service.revoke_share(db, session_id, plan_id, request_id=request_id)
