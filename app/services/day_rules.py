"""
Day entries and the validation engine.

A ``DayEntry`` is one calendar day of one worker: up to two time segments
(morning, afternoon) or a single absence flag, never both. Validation never
raises; it reports errors and the worked minutes so the caller can decide
whether to block a save.

Calendar classification (weekend / future) is a pure function of the date and
an explicit ``today`` so the rules can be checked for any reference date.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Iterable, Optional

MAX_DAILY_MINUTES = 8 * 60

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

SEGMENTS = ("morning", "afternoon")


class AbsenceType(str, Enum):
    NONE = "none"
    VACATION = "vacation"
    NON_WORKING_DAY = "nonWorkingDay"
    MEDICAL_LEAVE = "medicalLeave"


class VacationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ── Time helpers ────────────────────────────────────────────────────
def parse_hhmm(value: Optional[str]) -> Optional[int]:
    """Minutes since midnight for an ``HH:MM`` string, ``None`` when empty."""
    if value is None or value == "":
        return None
    match = _HHMM_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(total: int) -> str:
    """``510`` -> ``"8:30"``."""
    return f"{total // 60}:{total % 60:02d}"


def format_duration(total: int) -> str:
    """``510`` -> ``"8h 30m"``."""
    return f"{total // 60}h {total % 60}m"


# ── Calendar helpers ────────────────────────────────────────────────
def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def is_weekend(year: int, month: int, day: int) -> bool:
    return date(year, month, day).isoweekday() >= 6


def is_future_day(year: int, month: int, day: int, today: date) -> bool:
    return date(year, month, day) > today


def can_edit_hours(year: int, month: int, day: int, today: date) -> bool:
    return not is_weekend(year, month, day) and not is_future_day(year, month, day, today)


def can_edit_absence(year: int, month: int, day: int) -> bool:
    # Future days may be pre-booked as an absence; weekends never.
    return not is_weekend(year, month, day)


# ── Day entry ───────────────────────────────────────────────────────
@dataclass(frozen=True)
class DayEntry:
    day: int
    morning_in: Optional[str] = None
    morning_out: Optional[str] = None
    afternoon_in: Optional[str] = None
    afternoon_out: Optional[str] = None
    absence_type: AbsenceType = AbsenceType.NONE
    has_signature: bool = False
    medical_justification_ref: Optional[str] = None
    # Mirrored from the vacation ledger when the day has a vacation request.
    vacation_status: Optional[VacationStatus] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.day < 1 or self.day > 31:
            raise ValueError(f"Day {self.day} out of range")
        for name in ("morning_in", "morning_out", "afternoon_in", "afternoon_out"):
            value = getattr(self, name)
            if value == "":
                object.__setattr__(self, name, None)
            else:
                parse_hhmm(value)
        object.__setattr__(self, "absence_type", AbsenceType(self.absence_type))
        if self.absence_type is not AbsenceType.NONE and self.has_hours():
            raise ValueError(f"Day {self.day}: time fields must be empty for an absence")

    def times(self) -> tuple[Optional[str], Optional[str], Optional[str], Optional[str]]:
        return (self.morning_in, self.morning_out, self.afternoon_in, self.afternoon_out)

    def segment(self, name: str) -> tuple[Optional[str], Optional[str]]:
        return getattr(self, f"{name}_in"), getattr(self, f"{name}_out")

    def has_hours(self) -> bool:
        return any(self.times())

    def has_content(self) -> bool:
        return self.has_hours() or self.absence_type is not AbsenceType.NONE

    @property
    def total_minutes(self) -> int:
        return validate_day(self).total_minutes

    def with_hours(
        self,
        morning_in: Optional[str] = None,
        morning_out: Optional[str] = None,
        afternoon_in: Optional[str] = None,
        afternoon_out: Optional[str] = None,
    ) -> "DayEntry":
        return replace(
            self,
            morning_in=morning_in,
            morning_out=morning_out,
            afternoon_in=afternoon_in,
            afternoon_out=afternoon_out,
            absence_type=AbsenceType.NONE,
            medical_justification_ref=None,
            vacation_status=None,
        )

    def with_absence(
        self,
        absence_type: AbsenceType,
        medical_justification_ref: Optional[str] = None,
    ) -> "DayEntry":
        if absence_type is AbsenceType.NONE:
            return self.cleared()
        return replace(
            self,
            morning_in=None,
            morning_out=None,
            afternoon_in=None,
            afternoon_out=None,
            absence_type=absence_type,
            medical_justification_ref=(
                medical_justification_ref if absence_type is AbsenceType.MEDICAL_LEAVE else None
            ),
            vacation_status=self.vacation_status if absence_type is AbsenceType.VACATION else None,
        )

    def cleared(self) -> "DayEntry":
        return DayEntry(day=self.day)


# ── Validation engine ───────────────────────────────────────────────
@dataclass(frozen=True)
class DayValidation:
    total_minutes: int
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class MonthValidation:
    per_day_errors: dict[int, list[str]]
    messages: list[str]

    @property
    def ok(self) -> bool:
        return not self.messages


def validate_day(entry: DayEntry, max_minutes: int = MAX_DAILY_MINUTES) -> DayValidation:
    if entry.absence_type is not AbsenceType.NONE:
        return DayValidation(0)

    errors: list[str] = []
    total = 0
    for name in SEGMENTS:
        start, end = (parse_hhmm(v) for v in entry.segment(name))
        if start is None or end is None:
            # Incomplete segment: counts nothing but is not an error.
            continue
        if end < start:
            errors.append(f"{name}: end time precedes start time")
            continue
        total += end - start

    if total > max_minutes:
        errors.append(f"more than {max_minutes // 60} hours recorded ({format_duration(total)})")

    return DayValidation(total, tuple(errors))


def validate_month(days: Iterable[DayEntry]) -> MonthValidation:
    per_day: dict[int, list[str]] = {}
    messages: list[str] = []
    for entry in days:
        result = validate_day(entry)
        if result.errors:
            per_day[entry.day] = list(result.errors)
            messages.append(f"Day {entry.day}: {' | '.join(result.errors)}")
    return MonthValidation(per_day, messages)
