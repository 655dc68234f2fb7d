"""User-state provider — reads the traveler's onboarding state for the planner."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from milewise.models.session import OnboardingSession

logger = logging.getLogger(__name__)


class UserStateProvider:
    async def session_exists(self, db: AsyncSession, session_id: str) -> bool:
        result = await db.execute(
            select(OnboardingSession.id).where(OnboardingSession.id == session_id)
        )
        return result.scalar_one_or_none() is not None

    async def get_preferred_programs(self, db: AsyncSession, session_id: str) -> list[str] | None:
        """Loyalty program ids the traveler holds, or None when the session is unknown."""
        result = await db.execute(
            select(OnboardingSession).where(OnboardingSession.id == session_id)
        )
        session = result.scalar_one_or_none()
        if session is None:
            logger.info(f"planner.user_state.unknown_session session_id={session_id}")
            return None

        state = session.user_state if isinstance(session.user_state, dict) else {}
        points = state.get("points") or {}
        programs = points.get("programs") if isinstance(points, dict) else None
        if not isinstance(programs, list):
            return []

        program_ids = []
        for entry in programs:
            if isinstance(entry, dict) and isinstance(entry.get("programId"), str):
                program_ids.append(entry["programId"])
            elif isinstance(entry, str):
                program_ids.append(entry)
        return program_ids


user_state_provider = UserStateProvider()
