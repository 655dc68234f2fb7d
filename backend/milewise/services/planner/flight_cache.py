"""Flight cache repository — reads cached award inventory and normalizes it into candidates."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from milewise.models.award_deal import AwardDeal
from milewise.schemas.planner import CachedAwardCandidate, TripQuery, parse_timestamp, to_iso
from milewise.services.planner.config import CACHE, CANDIDATE_PROVIDER

logger = logging.getLogger(__name__)


@dataclass
class CacheQueryResult:
    candidates: list[CachedAwardCandidate] = field(default_factory=list)
    freshest_at: str | None = None
    considered_count: int = 0


def _normalize_timestamp(value) -> str | None:
    """ISO-8601 UTC when parseable; unparseable strings pass through for the validator to reject."""
    if value is None or value == "":
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        return value if isinstance(value, str) else None
    return to_iso(parsed)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _derive_stops(raw: dict) -> int | None:
    segments = raw.get("segments")
    if isinstance(segments, list) and segments:
        return len(segments) - 1
    stops = raw.get("stops")
    if _is_number(stops) and int(stops) == stops:
        return int(stops)
    return None


def _to_candidate(deal: AwardDeal) -> CachedAwardCandidate:
    raw = deal.raw_data if isinstance(deal.raw_data, dict) else {}

    depart_at = _normalize_timestamp(raw.get("departure")) or _normalize_timestamp(deal.departure_date)
    arrive_at = _normalize_timestamp(raw.get("arrival")) or _normalize_timestamp(raw.get("arrivalTime"))

    availability = raw.get("availability")
    if not _is_number(availability):
        availability = None

    return CachedAwardCandidate(
        id=deal.id,
        provider=CANDIDATE_PROVIDER,
        airline=deal.airline,
        program=deal.program,
        cabin=deal.cabin,
        origin=deal.origin,
        destination=deal.destination,
        depart_at=depart_at,
        arrive_at=arrive_at,
        stops=_derive_stops(raw),
        points_cost=deal.miles,
        taxes_fees_usd=float(deal.cash_price) if deal.cash_price is not None else None,
        booking_url=deal.booking_url,
        booking_link_status="cached" if deal.booking_url else "unavailable_in_cache",
        cache_updated_at=to_iso(deal.updated_at),
        fetched_at=to_iso(deal.created_at) if deal.created_at else None,
        raw_ref=deal.external_id,
        availability=availability,
    )


class FlightCacheRepository:
    """Read-only view over the award cache. Never calls a provider."""

    async def find_cached_candidates(
        self,
        db: AsyncSession,
        query: TripQuery,
        now: datetime | None = None,
    ) -> CacheQueryResult:
        now = now or datetime.now(timezone.utc)

        stmt = select(AwardDeal).where(
            AwardDeal.origin.in_(query.origins),
            or_(AwardDeal.expires_at.is_(None), AwardDeal.expires_at > now),
        )
        if not query.is_anywhere:
            stmt = stmt.where(AwardDeal.destination.in_(query.destinations))
        if query.programs:
            stmt = stmt.where(AwardDeal.program.in_(query.programs))
        if query.max_points:
            stmt = stmt.where(AwardDeal.miles <= query.max_points)
        if query.cabin:
            stmt = stmt.where(AwardDeal.cabin == query.cabin)

        bounds = query.date_window.bounds() if query.date_window else None
        if bounds:
            start, end = bounds
            stmt = stmt.where(AwardDeal.departure_date >= start, AwardDeal.departure_date <= end)

        limit = min(CACHE.anywhere_row_limit, CACHE.row_limit) if query.is_anywhere else CACHE.row_limit
        stmt = stmt.order_by(
            AwardDeal.updated_at.desc(),
            AwardDeal.miles.asc().nulls_last(),
            AwardDeal.created_at.desc(),
        ).limit(limit)

        result = await db.execute(stmt)
        candidates = [_to_candidate(deal) for deal in result.scalars().all()]
        logger.debug(f"planner.cache.read rows={len(candidates)} limit={limit} anywhere={query.is_anywhere}")

        freshest: datetime | None = None
        for candidate in candidates:
            updated = parse_timestamp(candidate.cache_updated_at)
            if updated and (freshest is None or updated > freshest):
                freshest = updated

        return CacheQueryResult(
            candidates=candidates,
            freshest_at=to_iso(freshest) if freshest else None,
            considered_count=len(candidates),
        )


flight_cache = FlightCacheRepository()
