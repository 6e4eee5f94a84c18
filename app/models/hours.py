"""
Hours models: one row per saved worker-month and one row per day.

Day rows are replaced wholesale on every save, so their ids are not stable.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer, String,
                        Text, UniqueConstraint)
from sqlalchemy.orm import relationship

from app.db.base import Base


class HoursMonth(Base):
    __tablename__ = "hours_months"
    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_hours_month_user_year_month"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    year: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    month: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    signature_data_url: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    days = relationship(
        "HoursDay",
        back_populates="month_record",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class HoursDay(Base):
    __tablename__ = "hours_days"
    __table_args__ = (UniqueConstraint("month_id", "day", name="uq_hours_day_month_day"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    month_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("hours_months.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    morning_in: str | None = Column(String(5), nullable=True)  # type: ignore[assignment]  # HH:MM
    morning_out: str | None = Column(String(5), nullable=True)  # type: ignore[assignment]
    afternoon_in: str | None = Column(String(5), nullable=True)  # type: ignore[assignment]
    afternoon_out: str | None = Column(String(5), nullable=True)  # type: ignore[assignment]
    total_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    absence_type: str = Column(  # type: ignore[assignment]
        String(20), nullable=False, default="none", server_default="none"
    )  # none | vacation | nonWorkingDay | medicalLeave
    has_signature: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    medical_justification_ref: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    month_record = relationship("HoursMonth", back_populates="days")
