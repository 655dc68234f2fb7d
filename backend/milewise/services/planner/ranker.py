"""Ranker — scores accepted options and puts them in a deterministic total order."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

from milewise.schemas.planner import CachedAwardCandidate, RankedOption, ScoreComponent, parse_timestamp
from milewise.services.planner.config import RANKING


@dataclass
class RankContext:
    preferred_programs: list[str] = field(default_factory=list)
    freshness_weight: float = RANKING.freshness_weight


def score_candidate(
    candidate: CachedAwardCandidate,
    context: RankContext,
    now: datetime,
) -> tuple[float, list[ScoreComponent]]:
    """
    Sum of four independent components:

    points        100 - min(points/1000, 80), or a neutral 50 when cost is unknown
    stops         30 - 10 per stop, unknown counts as 2 stops
    freshness     20 - age_minutes * freshness_weight, missing timestamp counts as fresh
    program_match 10 when the program is one the traveler holds
    """
    points = candidate.points_cost or 0
    if points > 0:
        points_score = max(0.0, RANKING.points_base - min(points / 1000, RANKING.points_max_penalty))
    else:
        points_score = RANKING.points_unknown

    stops = candidate.stops if candidate.stops is not None else RANKING.stops_unknown
    stops_score = max(0.0, RANKING.stops_base - stops * RANKING.stops_penalty)

    updated = parse_timestamp(candidate.cache_updated_at) or now
    age_minutes = (now - updated).total_seconds() / 60
    freshness_score = max(0.0, RANKING.freshness_base - age_minutes * context.freshness_weight)

    program_score = RANKING.program_match if candidate.program in context.preferred_programs else 0.0

    breakdown = [
        ScoreComponent(key="points", value=points_score, reason="Lower points cost is better"),
        ScoreComponent(key="stops", value=stops_score, reason="Fewer stops preferred"),
        ScoreComponent(key="freshness", value=freshness_score, reason="Fresher cache preferred"),
        ScoreComponent(key="program_match", value=program_score, reason="Preferred program bonus"),
    ]
    return sum(entry.value for entry in breakdown), breakdown


def _sort_key(option: RankedOption) -> tuple:
    points = option.candidate.points_cost
    updated = parse_timestamp(option.candidate.cache_updated_at)
    return (
        -option.score,
        points if points is not None else math.inf,
        -updated.timestamp() if updated else math.inf,
        option.candidate_id,
    )


def rank_options(
    accepted: list[RankedOption],
    context: RankContext | None = None,
    now: datetime | None = None,
) -> list[RankedOption]:
    """
    Score and order options.

    Ties break on points cost (unknown last), then most recent cache update,
    then candidate id, so identical inputs always give identical output.
    """
    context = context or RankContext()
    now = now or datetime.now(timezone.utc)

    ranked = []
    for option in accepted:
        score, breakdown = score_candidate(option.candidate, context, now)
        ranked.append(option.model_copy(update={"score": score, "score_breakdown": breakdown}))

    ranked.sort(key=_sort_key)
    return ranked
