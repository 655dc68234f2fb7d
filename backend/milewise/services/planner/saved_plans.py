"""Saved plans — persists a chosen option with provenance and manages share links.

Stored JSON is re-validated against the canonical schemas on every read.
A record that no longer matches is reported as a data-integrity error, never
coerced or partially returned.
"""

import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from milewise.config import settings
from milewise.models.saved_plan import SavedPlan
from milewise.schemas.planner import RankedOption, TripQuery, to_iso
from milewise.schemas.saved_plan import (
    CurrentCacheStatus,
    GetSavedPlanResponse,
    ListSavedPlansResponse,
    Provenance,
    SavedPlanResponse,
    SavedPlanSummary,
    SavePlanRequest,
    SavePlanResult,
)
from milewise.services.planner.config import PLANNER_DATA_SOURCE, PLANNER_VERSION, is_cache_stale
from milewise.services.planner.errors import (
    DataIntegrityError,
    SavedPlanNotFoundError,
    SavePlanValidationError,
    SessionNotFoundError,
)
from milewise.services.planner.flight_cache import flight_cache
from milewise.services.planner.user_state import user_state_provider

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 32
REDACTED_SESSION_ID = "redacted"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _issues(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "path": ".".join(str(part) for part in issue["loc"]) or "root",
            "message": issue["msg"],
            "type": issue["type"],
        }
        for issue in error.errors(include_url=False, include_context=False, include_input=False)
    ]


class SavedPlansService:
    """Session-owned saved plans with public share tokens."""

    # ─── Create & read ───

    async def save_plan(
        self,
        db: AsyncSession,
        session_id: str,
        body: Any,
        request_id: str | None = None,
    ) -> SavePlanResult:
        await self._ensure_session(db, session_id, request_id)

        try:
            payload = SavePlanRequest.model_validate(body)
        except ValidationError as e:
            raise SavePlanValidationError(request_id=request_id, errors=_issues(e))

        missing = payload.query.missing_fields()
        if missing:
            raise SavePlanValidationError(
                request_id=request_id,
                errors=[{"path": f"query.{m.path}", "message": m.reason, "type": "missing"} for m in missing],
            )

        share_token = self._generate_share_token() if payload.make_public else None
        cache = await flight_cache.find_cached_candidates(db, payload.query)
        selected = payload.selected_option

        provenance = Provenance(
            planner_version=PLANNER_VERSION,
            cache_freshest_at=cache.freshest_at or selected.candidate.cache_updated_at,
            cache_stale=not selected.verified or is_cache_stale(cache.freshest_at),
            considered_count=cache.considered_count,
            data_source=PLANNER_DATA_SOURCE,
            validated_at=to_iso(datetime.now(timezone.utc)),
        )

        plan = SavedPlan(
            session_id=session_id,
            title=payload.title,
            visibility="public" if payload.make_public else "private",
            share_token=share_token,
            query_json=payload.query.model_dump(mode="json", by_alias=True),
            selected_json=selected.model_dump(mode="json", by_alias=True),
            provenance=provenance.model_dump(mode="json", by_alias=True),
        )
        db.add(plan)
        await db.commit()

        parsed = self._parse_saved_plan(plan, request_id)
        logger.info(
            f"planner.plan.save.success request_id={request_id} session_id={session_id} "
            f"plan_id={plan.id} visibility={parsed.visibility} verified={parsed.selected.verified}"
        )
        return SavePlanResult(
            id=parsed.id,
            share_url=self._build_share_url(share_token) if share_token else None,
            saved_plan=parsed,
        )

    async def list_plans(
        self, db: AsyncSession, session_id: str, request_id: str | None = None
    ) -> ListSavedPlansResponse:
        await self._ensure_session(db, session_id, request_id)
        result = await db.execute(
            select(SavedPlan)
            .where(SavedPlan.session_id == session_id)
            .order_by(SavedPlan.created_at.desc())
        )
        plans = [self._parse_saved_plan(p, request_id) for p in result.scalars().all()]

        logger.info(
            f"planner.plan.list.success request_id={request_id} session_id={session_id} count={len(plans)}"
        )
        return ListSavedPlansResponse(plans=[
            SavedPlanSummary(
                id=p.id,
                created_at=p.created_at,
                title=p.title,
                visibility=p.visibility,
                share_token=p.share_token,
                query=p.query,
                provenance=p.provenance,
            )
            for p in plans
        ])

    async def get_plan(
        self, db: AsyncSession, session_id: str, plan_id: uuid.UUID, request_id: str | None = None
    ) -> GetSavedPlanResponse:
        await self._ensure_session(db, session_id, request_id)
        plan = await self._get_owned_plan(db, session_id, plan_id, request_id)
        parsed = self._parse_saved_plan(plan, request_id)

        cache = await flight_cache.find_cached_candidates(db, parsed.query)
        current = CurrentCacheStatus(freshest_at=cache.freshest_at, stale=is_cache_stale(cache.freshest_at))

        logger.info(f"planner.plan.get.success request_id={request_id} session_id={session_id} plan_id={plan_id}")
        return GetSavedPlanResponse(plan=parsed, current_cache_status=current)

    async def get_plan_by_share_token(
        self, db: AsyncSession, token: str, request_id: str | None = None
    ) -> GetSavedPlanResponse:
        plan = None
        if token:
            result = await db.execute(
                select(SavedPlan).where(
                    SavedPlan.share_token == token,
                    SavedPlan.visibility == "public",
                )
            )
            plan = result.scalar_one_or_none()
        if plan is None:
            raise SavedPlanNotFoundError(request_id=request_id)

        parsed = self._parse_saved_plan(plan, request_id)
        logger.info(f"planner.plan.share.get.success request_id={request_id} plan_id={parsed.id}")
        return GetSavedPlanResponse(plan=parsed.model_copy(update={"session_id": REDACTED_SESSION_ID}))

    # ─── Sharing ───

    async def make_public(
        self, db: AsyncSession, session_id: str, plan_id: uuid.UUID, request_id: str | None = None
    ) -> SavePlanResult:
        """Publish a plan. Always issues a fresh token so old links stay dead."""
        await self._ensure_session(db, session_id, request_id)
        plan = await self._get_owned_plan(db, session_id, plan_id, request_id, for_update=True)
        self._parse_saved_plan(plan, request_id)

        share_token = self._generate_share_token()
        plan.visibility = "public"
        plan.share_token = share_token
        await db.commit()

        parsed = self._parse_saved_plan(plan, request_id)
        logger.info(f"planner.plan.share.enabled request_id={request_id} session_id={session_id} plan_id={plan_id}")
        return SavePlanResult(
            id=parsed.id,
            share_url=self._build_share_url(share_token),
            saved_plan=parsed,
        )

    async def revoke_share(
        self, db: AsyncSession, session_id: str, plan_id: uuid.UUID, request_id: str | None = None
    ) -> SavedPlanResponse:
        await self._ensure_session(db, session_id, request_id)
        plan = await self._get_owned_plan(db, session_id, plan_id, request_id, for_update=True)
        self._parse_saved_plan(plan, request_id)

        plan.visibility = "private"
        plan.share_token = None
        await db.commit()

        parsed = self._parse_saved_plan(plan, request_id)
        logger.info(f"planner.plan.share.revoked request_id={request_id} session_id={session_id} plan_id={plan_id}")
        return parsed

    # ─── Helpers ───

    def _parse_saved_plan(self, plan: SavedPlan, request_id: str | None = None) -> SavedPlanResponse:
        query = selected = provenance = None
        try:
            query = TripQuery.model_validate(plan.query_json)
            if query.missing_fields():
                query = None
        except ValidationError:
            pass
        try:
            selected = RankedOption.model_validate(plan.selected_json)
        except ValidationError:
            pass
        try:
            provenance = Provenance.model_validate(plan.provenance)
        except ValidationError:
            pass

        if query is None or selected is None or provenance is None:
            logger.error(
                f"planner.plan.data_integrity_error request_id={request_id} plan_id={plan.id} "
                f"query_valid={query is not None} selected_valid={selected is not None} "
                f"provenance_valid={provenance is not None}"
            )
            raise DataIntegrityError(request_id=request_id)

        try:
            return SavedPlanResponse(
                id=plan.id,
                session_id=plan.session_id,
                created_at=_as_utc(plan.created_at),
                updated_at=_as_utc(plan.updated_at),
                title=plan.title,
                visibility=plan.visibility,
                share_token=plan.share_token,
                query=query,
                selected=selected,
                provenance=provenance,
            )
        except ValidationError:
            logger.error(
                f"planner.plan.data_integrity_error request_id={request_id} plan_id={plan.id} "
                f"visibility={plan.visibility!r}"
            )
            raise DataIntegrityError(request_id=request_id)

    async def _ensure_session(self, db: AsyncSession, session_id: str, request_id: str | None) -> None:
        if not await user_state_provider.session_exists(db, session_id):
            raise SessionNotFoundError(request_id=request_id)

    async def _get_owned_plan(
        self,
        db: AsyncSession,
        session_id: str,
        plan_id: uuid.UUID,
        request_id: str | None,
        for_update: bool = False,
    ) -> SavedPlan:
        stmt = select(SavedPlan).where(SavedPlan.id == plan_id, SavedPlan.session_id == session_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        plan = result.scalar_one_or_none()
        if plan is None:
            raise SavedPlanNotFoundError(request_id=request_id)
        return plan

    def _generate_share_token(self) -> str:
        return secrets.token_urlsafe(SHARE_TOKEN_BYTES)

    def _build_share_url(self, token: str) -> str | None:
        base = settings.web_base_url
        if not base:
            return None
        return f"{base.rstrip('/')}/share/plans/{token}"


saved_plans_service = SavedPlansService()
