import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from milewise.database import Base, JSONType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedPlan(Base):
    __tablename__ = "saved_plans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("onboarding_sessions.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str | None] = mapped_column(String(255))
    visibility: Mapped[str] = mapped_column(String(10), default="private")
    share_token: Mapped[str | None] = mapped_column(String(64))
    # Stored as-is; re-validated against the schemas on every read
    query_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
    selected_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
    provenance: Mapped[dict] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("ix_saved_plans_session_created", "session_id", "created_at"),
        Index("ix_saved_plans_share_token", "share_token", unique=True),
    )
