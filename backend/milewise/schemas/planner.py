"""Planner wire schemas: trip query, cached candidates, ranked options, plan responses."""

from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

Cabin = Literal["economy", "premium_economy", "business", "first"]
AirportCode = Annotated[str, Field(min_length=3, max_length=5)]


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime, None if unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _is_date_only(value: str) -> bool:
    value = value.strip()
    if len(value) != 10:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


class CamelModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# ─── Query ───


class AnywhereDestination(CamelModel):
    mode: Literal["anywhere"]


class DateWindow(CamelModel):
    start: str | None = None
    end: str | None = None

    def bounds(self) -> tuple[datetime, datetime] | None:
        """Inclusive UTC bounds. A date-only end covers the whole day."""
        start = parse_timestamp(self.start)
        end = parse_timestamp(self.end)
        if start is None or end is None:
            return None
        if _is_date_only(self.end):
            end = end + timedelta(days=1) - timedelta(microseconds=1)
        return start, end


class MissingField(CamelModel):
    path: str
    reason: str


class TripQuery(CamelModel):
    origins: list[AirportCode] = Field(default_factory=list)
    destinations: Annotated[list[AirportCode], Field(min_length=1)] | AnywhereDestination
    date_window: DateWindow | None = None
    cabin: Cabin | None = None
    passengers: int = Field(1, ge=1)
    max_stops: int | None = Field(None, ge=0)
    no_redeyes: bool | None = None
    programs: list[str] | None = None
    max_points: int | None = Field(None, gt=0)
    allow_stale_cache: bool = False

    @property
    def is_anywhere(self) -> bool:
        return isinstance(self.destinations, AnywhereDestination)

    def missing_fields(self) -> list[MissingField]:
        """Fields that must be present before the query can be planned."""
        missing: list[MissingField] = []
        if not self.origins:
            missing.append(MissingField(path="origins", reason="At least one origin is required"))
        window = self.date_window
        if window is None or not window.start or not window.end:
            missing.append(MissingField(
                path="dateWindow", reason="dateWindow.start and dateWindow.end required",
            ))
        elif window.bounds() is None:
            missing.append(MissingField(
                path="dateWindow", reason="dateWindow.start and dateWindow.end must be ISO dates",
            ))
        if not self.cabin:
            missing.append(MissingField(path="cabin", reason="cabin is required"))
        return missing


# ─── Candidates & ranking ───


class CachedAwardCandidate(CamelModel):
    id: str
    provider: str
    airline: str | None = None
    program: str | None = None
    cabin: str | None = None
    origin: str | None = None
    destination: str | None = None
    depart_at: str | None = None
    arrive_at: str | None = None
    stops: int | None = None
    points_cost: int | None = None
    taxes_fees_usd: float | None = None
    booking_url: str | None = None
    booking_link_status: Literal["cached", "unavailable_in_cache"] = "unavailable_in_cache"
    cache_updated_at: str
    fetched_at: str | None = None
    raw_ref: str | None = None
    availability: int | float | None = None


class ConstraintViolation(CamelModel):
    code: str
    message: str
    path: str | None = None
    meta: dict[str, Any] | None = None


class ScoreComponent(CamelModel):
    key: str
    value: float
    reason: str


class RankedOption(CamelModel):
    candidate_id: str
    candidate: CachedAwardCandidate
    verified: bool
    score: float
    score_breakdown: list[ScoreComponent]
    passed_constraints: list[str]
    failed_constraints: list[ConstraintViolation]


class CacheStatus(CamelModel):
    freshest_at: str | None = None
    stale: bool
    considered_count: int = Field(ge=0)


# ─── Responses ───


class PlanOk(CamelModel):
    type: Literal["ok"] = "ok"
    request_id: str
    query: TripQuery
    options: list[RankedOption]
    cache_status: CacheStatus


class PlanNeedsInput(CamelModel):
    type: Literal["needs_input"] = "needs_input"
    request_id: str
    missing: list[MissingField]
    cache_status: CacheStatus | None = None


class PlanNoFeasible(CamelModel):
    type: Literal["no_feasible_plan"] = "no_feasible_plan"
    request_id: str
    reasons: list[ConstraintViolation]
    cache_status: CacheStatus


PlanResponse = Annotated[PlanOk | PlanNeedsInput | PlanNoFeasible, Field(discriminator="type")]
