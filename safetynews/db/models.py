"""SQLAlchemy models."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from safetynews.db.compat import KeywordList
from safetynews.db.engine import Base


class IncidentRecord(Base):
    """Persisted safety incident. Rows are append-only; ``id`` preserves insertion order."""

    __tablename__ = "safety_incidents"
    __table_args__ = (
        Index("ix_safety_incidents_occurred_at", "occurred_at"),
        Index("ix_safety_incidents_news_id", "news_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    news_id: Mapped[str] = mapped_column(String(200), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # the incident's own UTC offset; occurred_at is stored as UTC
    utc_offset_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(60), nullable=False)
    severity: Mapped[int] = mapped_column(Integer, nullable=False)
    keywords: Mapped[tuple] = mapped_column(KeywordList(), nullable=False, default=tuple)
    summary: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
