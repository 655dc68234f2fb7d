"""Planner configuration — cache thresholds, ranking defaults and provenance tags."""

from dataclasses import dataclass
from datetime import datetime, timezone

from milewise.config import settings
from milewise.schemas.planner import parse_timestamp

PLANNER_VERSION = "cache_only_v1"
PLANNER_DATA_SOURCE = "db_cache_only"
CANDIDATE_PROVIDER = "seats_aero_cache"


@dataclass(frozen=True)
class CacheThresholds:
    """How old and how large a cache read may be."""
    max_age_minutes: int = 45
    row_limit: int = 300
    anywhere_row_limit: int = 100


@dataclass(frozen=True)
class RankingWeights:
    """Score component ceilings and the freshness decay per minute."""
    points_base: float = 100.0
    points_max_penalty: float = 80.0
    points_unknown: float = 50.0
    stops_base: float = 30.0
    stops_penalty: float = 10.0
    stops_unknown: int = 2
    freshness_base: float = 20.0
    freshness_weight: float = 0.1
    program_match: float = 10.0


CACHE = CacheThresholds(
    max_age_minutes=settings.planner_cache_max_age_minutes,
    row_limit=settings.planner_cache_row_limit,
    anywhere_row_limit=settings.planner_anywhere_row_limit,
)
RANKING = RankingWeights(freshness_weight=settings.planner_freshness_weight)


def is_cache_stale(
    freshest_at: str | None,
    now: datetime | None = None,
    max_minutes: int = CACHE.max_age_minutes,
) -> bool:
    """Stale when older than max_minutes. Missing or unparseable timestamps are stale."""
    updated = parse_timestamp(freshest_at)
    if updated is None:
        return True
    now = now or datetime.now(timezone.utc)
    age_minutes = (now - updated).total_seconds() / 60
    return age_minutes > max_minutes
