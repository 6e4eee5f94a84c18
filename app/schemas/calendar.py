"""Pydantic schemas for calendar events and vacation requests."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import field_validator, model_validator

from app.schemas.common import CamelModel
from app.services.day_rules import VacationStatus
from app.services.visibility import Visibility

EVENT_TYPES = {"vacation", "visit", "trial", "medical_appointment", "court_citation", "other"}


class _Shared(CamelModel):
    visibility: Visibility = Visibility.ONLY_ME
    viewers: Optional[list[int]] = None

    @model_validator(mode="after")
    def _viewers_for_some(self) -> "_Shared":
        if self.visibility is Visibility.SOME and not self.viewers:
            raise ValueError("viewers are required when visibility is 'some'")
        if self.visibility is not Visibility.SOME:
            self.viewers = None
        return self


class EventCreate(_Shared):
    type: str
    date: date

    @field_validator("type")
    @classmethod
    def _validate_type(cls, v: str) -> str:
        if v not in EVENT_TYPES:
            raise ValueError(f"Event type must be one of: {sorted(EVENT_TYPES)}")
        return v


class EventRead(CamelModel):
    id: int
    owner_id: int
    type: str
    date: date
    status: Optional[VacationStatus] = None
    visibility: Visibility
    viewers: Optional[list[int]] = None
    created_at: Optional[datetime] = None


class VacationStatusUpdate(CamelModel):
    status: VacationStatus

    @field_validator("status")
    @classmethod
    def _decision_only(cls, v: VacationStatus) -> VacationStatus:
        if v is VacationStatus.PENDING:
            raise ValueError("status must be 'approved' or 'rejected'")
        return v


class VacationRangeRequest(_Shared):
    start_date: date
    end_date: date


class RangeFailureRead(CamelModel):
    date: date
    reason: str


class VacationRangeResponse(CamelModel):
    created: list[EventRead]
    failures: list[RangeFailureRead]
    success_count: int
    days_left: int


class DaysLeftResponse(CamelModel):
    allowance: int
    days_left: int
    approved_days_left: int
