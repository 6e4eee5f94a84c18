"""
CalendarEvent model: shared calendar entries.

Vacation requests are calendar events of type ``vacation``, one per requested
day, carrying a ``status``. A worker holds at most one vacation per date.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (JSON, Column, Date, DateTime, ForeignKey, Index, Integer,
                        String, text)

from app.db.base import Base

VACATION = "vacation"


class CalendarEvent(Base):
    __tablename__ = "calendar_events"
    __table_args__ = (
        Index("ix_calendar_owner_date", "owner_id", "date"),
        Index(
            "uq_calendar_vacation_owner_date",
            "owner_id",
            "date",
            unique=True,
            postgresql_where=text("type = 'vacation'"),
            sqlite_where=text("type = 'vacation'"),
        ),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    owner_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    # vacation | visit | trial | medical_appointment | court_citation | other
    date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    status: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    # pending | approved | rejected, vacation only
    visibility: str = Column(  # type: ignore[assignment]
        String(20), nullable=False, default="only-me", server_default="only-me"
    )  # all | only-me | some
    viewers: list[int] | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
