"""Pydantic schemas for month ledgers, day edits and range copy."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator, model_validator

from app.schemas.common import CamelModel
from app.services.day_rules import (AbsenceType, DayEntry, VacationStatus,
                                    days_in_month, parse_hhmm)
from app.services.month_ledger import MonthLedger, MonthSummary

_TIME_FIELDS = ("morning_in", "morning_out", "afternoon_in", "afternoon_out")


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    parse_hhmm(v)
    return v


# ── Day ─────────────────────────────────────────────────────────────
class DayPayload(CamelModel):
    day: int = Field(ge=1, le=31)
    morning_in: Optional[str] = None
    morning_out: Optional[str] = None
    afternoon_in: Optional[str] = None
    afternoon_out: Optional[str] = None
    absence_type: AbsenceType = AbsenceType.NONE
    medical_justification_ref: Optional[str] = None

    @field_validator(*_TIME_FIELDS)
    @classmethod
    def _valid_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)

    @model_validator(mode="after")
    def _absence_has_no_hours(self) -> "DayPayload":
        if self.absence_type is not AbsenceType.NONE and any(
            getattr(self, name) for name in _TIME_FIELDS
        ):
            raise ValueError(f"Day {self.day}: time fields must be empty for an absence")
        return self

    def to_entry(self) -> DayEntry:
        return DayEntry(
            day=self.day,
            morning_in=self.morning_in,
            morning_out=self.morning_out,
            afternoon_in=self.afternoon_in,
            afternoon_out=self.afternoon_out,
            absence_type=self.absence_type,
            medical_justification_ref=(
                self.medical_justification_ref
                if self.absence_type is AbsenceType.MEDICAL_LEAVE
                else None
            ),
        )


class DayRead(CamelModel):
    day: int
    morning_in: Optional[str] = None
    morning_out: Optional[str] = None
    afternoon_in: Optional[str] = None
    afternoon_out: Optional[str] = None
    total_minutes: int = 0
    absence_type: AbsenceType = AbsenceType.NONE
    has_signature: bool = False
    medical_justification_ref: Optional[str] = None
    vacation_status: Optional[VacationStatus] = None

    @classmethod
    def from_entry(cls, entry: DayEntry) -> "DayRead":
        return cls(
            day=entry.day,
            morning_in=entry.morning_in,
            morning_out=entry.morning_out,
            afternoon_in=entry.afternoon_in,
            afternoon_out=entry.afternoon_out,
            total_minutes=entry.total_minutes,
            absence_type=entry.absence_type,
            has_signature=entry.has_signature,
            medical_justification_ref=entry.medical_justification_ref,
            vacation_status=entry.vacation_status,
        )


# ── Month ───────────────────────────────────────────────────────────
class _MonthDays(CamelModel):
    year: int = Field(ge=1900, le=9999)
    month: int = Field(ge=1, le=12)
    days: list[DayPayload] = []

    @model_validator(mode="after")
    def _days_belong_to_month(self) -> "_MonthDays":
        count = days_in_month(self.year, self.month)
        seen: set[int] = set()
        for payload in self.days:
            if payload.day > count:
                raise ValueError(f"Day {payload.day} does not exist in {self.year}-{self.month:02d}")
            if payload.day in seen:
                raise ValueError(f"Day {payload.day} appears more than once")
            seen.add(payload.day)
        return self

    def entries(self) -> list[DayEntry]:
        return [p.to_entry() for p in self.days]


class MonthPayload(_MonthDays):
    signature_data_url: Optional[str] = None

    def to_ledger(self, user_id: int) -> MonthLedger:
        return MonthLedger(
            user_id,
            self.year,
            self.month,
            self.entries(),
            signature=self.signature_data_url,
        )


class MonthRead(CamelModel):
    user_id: int
    year: int
    month: int
    signature_data_url: Optional[str] = None
    days: list[DayRead]

    @classmethod
    def from_ledger(cls, ledger: MonthLedger) -> "MonthRead":
        return cls(
            user_id=ledger.user_id,
            year=ledger.year,
            month=ledger.month,
            signature_data_url=ledger.signature,
            days=[DayRead.from_entry(d) for d in ledger.rows()],
        )


class MonthResponse(CamelModel):
    exists: bool
    data: Optional[MonthRead] = None


class SummaryRead(CamelModel):
    year: int
    month: int
    total_minutes: int
    total_formatted: str
    days_with_hours: int
    working_days: int
    vacation_days: int

    @classmethod
    def build(cls, ledger: MonthLedger, summary: MonthSummary) -> "SummaryRead":
        return cls(
            year=ledger.year,
            month=ledger.month,
            total_minutes=summary.total_minutes,
            total_formatted=summary.total_formatted,
            days_with_hours=summary.days_with_hours,
            working_days=summary.working_days,
            vacation_days=ledger.vacation_days(),
        )


class SaveResponse(CamelModel):
    success: bool = True
    message: str
    total_minutes: int


# ── Single-day edit ─────────────────────────────────────────────────
class DayEditRequest(CamelModel):
    """Partial edit of one day.

    Omitted time fields leave the hours untouched; sending any of them
    replaces all four. ``absenceType`` sets or clears the absence.
    """

    year: int = Field(ge=1900, le=9999)
    month: int = Field(ge=1, le=12)
    morning_in: Optional[str] = None
    morning_out: Optional[str] = None
    afternoon_in: Optional[str] = None
    afternoon_out: Optional[str] = None
    absence_type: Optional[AbsenceType] = None
    medical_justification_ref: Optional[str] = None

    @field_validator(*_TIME_FIELDS)
    @classmethod
    def _valid_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)

    def times(self) -> Optional[tuple[Optional[str], ...]]:
        if not self.model_fields_set.intersection(_TIME_FIELDS):
            return None
        return tuple(getattr(self, name) for name in _TIME_FIELDS)


# ── Range copy ──────────────────────────────────────────────────────
class RangeCopyRequest(_MonthDays):
    source_day: int = Field(ge=1, le=31)
    target_day: int = Field(ge=1, le=31)


class RangeCopyResponse(CamelModel):
    days: list[DayRead]
    affected: int
    affected_days: list[int]
    message: str
    quota_left: Optional[int] = None
