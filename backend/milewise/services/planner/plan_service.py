"""Plan service — turns a trip query into a ranked plan using cached inventory only.

input check -> cache read -> staleness gate -> constraints -> ranking.
Every outcome, including "no plan", is returned as one of the three
PlanResponse variants; nothing here raises for an infeasible query.
"""

import logging
import time
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from milewise.schemas.planner import (
    CacheStatus,
    ConstraintViolation,
    MissingField,
    PlanNeedsInput,
    PlanNoFeasible,
    PlanOk,
    PlanResponse,
    TripQuery,
)
from milewise.services.planner.config import CACHE, PLANNER_DATA_SOURCE, is_cache_stale
from milewise.services.planner.constraints import apply_constraints
from milewise.services.planner.flight_cache import flight_cache
from milewise.services.planner.ranker import RankContext, rank_options
from milewise.services.planner.user_state import user_state_provider

logger = logging.getLogger(__name__)


class PlanService:
    """Coordinates the cache-only planning pipeline for one request."""

    async def plan(
        self,
        db: AsyncSession,
        query: TripQuery,
        session_id: str | None,
        request_id: str | None = None,
        now: datetime | None = None,
    ) -> PlanResponse:
        request_id = request_id or str(uuid.uuid4())
        now = now or datetime.now(timezone.utc)
        destinations = "anywhere" if query.is_anywhere else len(query.destinations)
        logger.info(
            f"planner.plan.start request_id={request_id} session_id={session_id} "
            f"data_source={PLANNER_DATA_SOURCE} origins={len(query.origins)} "
            f"destinations={destinations} cabin={query.cabin}"
        )

        # 1. Input check
        missing = query.missing_fields()
        preferred_programs = None
        if session_id:
            preferred_programs = await user_state_provider.get_preferred_programs(db, session_id)
        if preferred_programs is None:
            reason = "Unknown onboarding session" if session_id else "Missing onboarding session"
            missing.append(MissingField(path="session", reason=reason))
        if missing:
            logger.info(
                f"planner.plan.needs_input request_id={request_id} "
                f"missing={[m.path for m in missing]}"
            )
            return PlanNeedsInput(request_id=request_id, missing=missing)

        # 2. Cache read
        started = time.perf_counter()
        cache = await flight_cache.find_cached_candidates(db, query, now=now)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"planner.plan.cache.query_ms request_id={request_id} duration={elapsed_ms} "
            f"considered_count={cache.considered_count}"
        )

        if cache.considered_count == 0:
            logger.warning(f"planner.plan.cache.empty request_id={request_id}")
            return PlanNoFeasible(
                request_id=request_id,
                reasons=[ConstraintViolation(
                    code="CACHE_EMPTY",
                    message="No cached flights available for query",
                    meta={
                        "origins": query.origins,
                        "destinations": query.model_dump(mode="json", by_alias=True)["destinations"],
                        "dateWindow": query.date_window.model_dump(mode="json", by_alias=True),
                        "cabin": query.cabin,
                    },
                )],
                cache_status=CacheStatus(
                    freshest_at=cache.freshest_at, stale=True, considered_count=0,
                ),
            )

        # 3. Staleness gate
        stale = is_cache_stale(cache.freshest_at, now=now, max_minutes=CACHE.max_age_minutes)
        cache_status = CacheStatus(
            freshest_at=cache.freshest_at, stale=stale, considered_count=cache.considered_count,
        )
        if stale and not query.allow_stale_cache:
            logger.warning(
                f"planner.plan.cache.stale_rejected request_id={request_id} "
                f"freshest_at={cache.freshest_at}"
            )
            return PlanNoFeasible(
                request_id=request_id,
                reasons=[ConstraintViolation(
                    code="CACHE_STALE",
                    message=f"Cache older than {CACHE.max_age_minutes} minutes",
                    meta={"freshestAt": cache.freshest_at},
                )],
                cache_status=cache_status,
            )

        # 4. Constraint filtering
        accepted, rejected = apply_constraints(cache.candidates, query)
        logger.info(
            f"planner.plan.constraints.filtered request_id={request_id} "
            f"accepted={len(accepted)} rejected={len(rejected)}"
        )
        if not accepted:
            return PlanNoFeasible(request_id=request_id, reasons=rejected, cache_status=cache_status)

        # 5. Ranking. Stale-but-allowed results are returned unverified
        ranked = rank_options(accepted, RankContext(preferred_programs=preferred_programs), now=now)
        options = [option.model_copy(update={"verified": not stale}) for option in ranked]

        logger.info(
            f"planner.plan.rank.returned request_id={request_id} count={len(options)} stale={stale}"
        )
        return PlanOk(
            request_id=request_id,
            query=query,
            options=options,
            cache_status=cache_status,
        )


plan_service = PlanService()
