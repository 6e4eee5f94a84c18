"""
User model: workers and administrators, with the worker's display profile
and annual vacation allowance.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.core.config import settings
from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    full_name: str = Column(String(200), nullable=False, default="")  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="worker",
        server_default="worker",
    )  # worker | admin
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    vacation_days_per_year: int = Column(  # type: ignore[assignment]
        Integer,
        nullable=False,
        default=settings.DEFAULT_VACATION_DAYS_PER_YEAR,
    )

    # Profile printed on the monthly report
    worker_first_name: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    worker_last_name: str | None = Column(String(150), nullable=True)  # type: ignore[assignment]
    worker_nif: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    worker_ss_number: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    work_center: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    company_cif: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    company_ccc: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
