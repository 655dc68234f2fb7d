import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from milewise.schemas.planner import CamelModel, RankedOption, TripQuery

Visibility = Literal["private", "public"]


class Provenance(CamelModel):
    planner_version: str
    cache_freshest_at: str | None = None
    cache_stale: bool
    considered_count: int = Field(ge=0)
    data_source: str
    validated_at: str


class SavePlanRequest(CamelModel):
    query: TripQuery
    selected_option: RankedOption
    title: str | None = Field(None, max_length=255)
    make_public: bool = False


class SavedPlanResponse(CamelModel):
    id: uuid.UUID
    session_id: str
    created_at: datetime
    updated_at: datetime
    title: str | None = None
    visibility: Visibility
    share_token: str | None = None
    query: TripQuery
    selected: RankedOption
    provenance: Provenance


class SavedPlanSummary(CamelModel):
    id: uuid.UUID
    created_at: datetime
    title: str | None = None
    visibility: Visibility
    share_token: str | None = None
    query: TripQuery
    provenance: Provenance


class SavePlanResult(CamelModel):
    id: uuid.UUID
    share_url: str | None = None
    saved_plan: SavedPlanResponse


class ListSavedPlansResponse(CamelModel):
    plans: list[SavedPlanSummary]


class CurrentCacheStatus(CamelModel):
    freshest_at: str | None = None
    stale: bool


class GetSavedPlanResponse(CamelModel):
    plan: SavedPlanResponse
    current_cache_status: CurrentCacheStatus | None = None


class ErrorResponse(CamelModel):
    error_code: str
    message: str | None = None
    request_id: str | None = None
    errors: list[dict[str, Any]] | None = None
