"""Pydantic schemas for User CRUD."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.common import CamelModel

_VALID_ROLES = {"worker", "admin"}


def _normalise_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("Invalid email address")
    return v


class _Profile(CamelModel):
    worker_first_name: str | None = None
    worker_last_name: str | None = None
    worker_nif: str | None = None
    worker_ss_number: str | None = None
    work_center: str | None = None
    company_cif: str | None = None
    company_ccc: str | None = None


class UserCreate(_Profile):
    email: str
    password: str = Field(min_length=8)
    full_name: str | None = None
    role: str = "worker"
    vacation_days_per_year: int | None = Field(default=None, ge=0, le=366)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalise_email(v)


class UserRead(_Profile):
    id: int
    email: str
    full_name: str | None
    role: str
    is_active: bool
    vacation_days_per_year: int
    created_at: datetime | None


class UserUpdate(_Profile):
    email: str | None = None
    full_name: str | None = None
    role: str | None = None
    password: str | None = Field(default=None, min_length=8)
    vacation_days_per_year: int | None = Field(default=None, ge=0, le=366)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        if v is not None and v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return None if v is None else _normalise_email(v)


class UserActiveUpdate(CamelModel):
    is_active: bool
