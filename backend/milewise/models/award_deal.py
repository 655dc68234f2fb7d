"""Cached award inventory written by the ingestion job. The planner only reads it."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from milewise.database import Base, JSONType


class AwardDeal(Base):
    __tablename__ = "award_deals"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    external_id: Mapped[str | None] = mapped_column(String(128))
    airline: Mapped[str | None] = mapped_column(String(100))
    program: Mapped[str | None] = mapped_column(String(50))
    origin: Mapped[str] = mapped_column(String(5), nullable=False)
    destination: Mapped[str] = mapped_column(String(5), nullable=False)
    departure_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cabin: Mapped[str | None] = mapped_column(String(20))
    miles: Mapped[int | None] = mapped_column(Integer)
    cash_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    booking_url: Mapped[str | None] = mapped_column(Text)
    raw_data: Mapped[dict | None] = mapped_column(JSONType)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_award_deals_route_departure", "origin", "destination", "departure_date"),
        Index("ix_award_deals_updated_at", "updated_at"),
    )
