"""
Month ledger: the ordered day entries of one (worker, year, month) plus the
signature shared by the whole month.

Every edit substitutes a new ``DayEntry`` at its index; entries themselves are
never mutated, so aggregates are a plain fold over the sequence.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Iterator, Mapping, Optional

from app.core.exceptions import DayLocked
from app.services.day_rules import (
    AbsenceType,
    DayEntry,
    MonthValidation,
    VacationStatus,
    can_edit_absence,
    can_edit_hours,
    days_in_month,
    format_minutes,
    is_future_day,
    is_weekend,
    validate_day,
    validate_month,
)

_UNSET = object()


@dataclass(frozen=True)
class MonthSummary:
    total_minutes: int
    total_formatted: str
    days_with_hours: int
    working_days: int


class MonthLedger:
    def __init__(
        self,
        user_id: int,
        year: int,
        month: int,
        days: Iterable[DayEntry] = (),
        signature: Optional[str] = None,
    ):
        if not 1 <= month <= 12:
            raise ValueError(f"Month {month} out of range")
        self.user_id = user_id
        self.year = year
        self.month = month
        self.signature = signature or None
        self.dirty = False
        self._days = self._complete(days)

    def _complete(self, days: Iterable[DayEntry]) -> tuple[DayEntry, ...]:
        """One entry per calendar day; missing days become empty entries."""
        count = days_in_month(self.year, self.month)
        by_day: dict[int, DayEntry] = {}
        for entry in days:
            if entry.day > count:
                raise ValueError(f"Day {entry.day} does not exist in {self.year}-{self.month:02d}")
            if entry.day in by_day:
                raise ValueError(f"Day {entry.day} appears more than once")
            by_day[entry.day] = entry
        return tuple(by_day.get(n, DayEntry(day=n)) for n in range(1, count + 1))

    @classmethod
    def empty(cls, user_id: int, year: int, month: int) -> "MonthLedger":
        return cls(user_id, year, month)

    # ── Access ───────────────────────────────────────────────────────
    @property
    def days(self) -> tuple[DayEntry, ...]:
        return self._days

    def __len__(self) -> int:
        return len(self._days)

    def __iter__(self) -> Iterator[DayEntry]:
        return iter(self._days)

    def day(self, number: int) -> DayEntry:
        return self._days[self.index_of(number)]

    def index_of(self, number: int) -> int:
        if not 1 <= number <= len(self._days):
            raise ValueError(f"Day {number} does not exist in {self.year}-{self.month:02d}")
        return number - 1

    def date_of(self, number: int) -> date:
        return date(self.year, self.month, number)

    # ── Classification ───────────────────────────────────────────────
    def is_weekend(self, number: int) -> bool:
        return is_weekend(self.year, self.month, number)

    def is_future(self, number: int, today: date) -> bool:
        return is_future_day(self.year, self.month, number, today)

    # ── Edits ────────────────────────────────────────────────────────
    def recompute_day(self, index: int, entry: DayEntry) -> DayEntry:
        """Substitute the entry at ``index``; minutes follow from the rules."""
        if entry.day != index + 1:
            raise ValueError(f"Entry for day {entry.day} cannot be stored at index {index}")
        self._days = self._days[:index] + (entry,) + self._days[index + 1 :]
        self.dirty = True
        return entry

    def edit_day(
        self,
        number: int,
        today: date,
        *,
        times: Optional[tuple[Optional[str], Optional[str], Optional[str], Optional[str]]] = None,
        absence_type: Optional[AbsenceType] = None,
        medical_justification_ref=_UNSET,
    ) -> DayEntry:
        """Apply a user edit, honouring the weekend / future locks."""
        current = self.day(number)
        if absence_type is not None and absence_type is not current.absence_type:
            if not can_edit_absence(self.year, self.month, number):
                raise DayLocked(f"Day {number}: absences cannot be set on a weekend")
        if times is not None and any(times) and times != current.times():
            if not can_edit_hours(self.year, self.month, number, today):
                raise DayLocked(f"Day {number}: hours cannot be recorded on a weekend or future day")

        if absence_type is not None and absence_type is not AbsenceType.NONE:
            ref = (
                current.medical_justification_ref
                if medical_justification_ref is _UNSET
                else medical_justification_ref
            )
            new = current.with_absence(absence_type, ref)
        elif times is not None:
            new = current.with_hours(*times)
        elif absence_type is AbsenceType.NONE:
            new = current.cleared()
        else:
            new = current
        return self.recompute_day(self.index_of(number), new)

    def clear_day(self, number: int) -> DayEntry:
        return self.recompute_day(self.index_of(number), self.day(number).cleared())

    def replace_days(self, days: Iterable[DayEntry]) -> None:
        self._days = self._complete(days)
        self.dirty = True

    def set_signature(self, signature: Optional[str]) -> None:
        self.signature = signature or None
        self.dirty = True

    def mark_saved(self) -> None:
        self.dirty = False

    # ── Aggregates ───────────────────────────────────────────────────
    def rows(self) -> list[DayEntry]:
        """Entries as they are persisted, with ``has_signature`` resolved."""
        signed = self.signature is not None
        return [replace(d, has_signature=signed and d.has_hours()) for d in self._days]

    def validate(self) -> MonthValidation:
        return validate_month(self._days)

    def summary(self, today: date) -> MonthSummary:
        total = 0
        days_with_hours = 0
        working_days = 0
        for entry in self._days:
            if not self.is_weekend(entry.day):
                if not self.is_future(entry.day, today) or entry.has_content():
                    working_days += 1
            minutes = validate_day(entry).total_minutes
            if minutes > 0:
                total += minutes
                days_with_hours += 1
        return MonthSummary(
            total_minutes=total,
            total_formatted=format_minutes(total),
            days_with_hours=days_with_hours,
            working_days=working_days,
        )

    def vacation_days(self) -> int:
        return sum(1 for d in self._days if d.absence_type is AbsenceType.VACATION)

    def vacation_dates(self) -> set[date]:
        return {self.date_of(d.day) for d in self._days if d.absence_type is AbsenceType.VACATION}

    # ── Calendar rules ───────────────────────────────────────────────
    def weekend_absence_errors(self) -> dict[int, list[str]]:
        return {
            d.day: [f"Day {d.day}: absences cannot be set on a weekend"]
            for d in self._days
            if d.absence_type is not AbsenceType.NONE and self.is_weekend(d.day)
        }

    def hold_vacation_requests(self, requests: Mapping[int, VacationStatus]) -> dict[int, list[str]]:
        """Keep every pending or approved request day as a vacation.

        A request day left empty is restored to vacation; one carrying hours
        or another absence is reported instead.
        """
        errors: dict[int, list[str]] = {}
        for number, status in sorted(requests.items()):
            if status is VacationStatus.REJECTED or self.is_weekend(number):
                continue
            current = self.day(number)
            if current.absence_type is AbsenceType.VACATION:
                continue
            if current.has_content():
                errors[number] = [
                    f"Day {number}: vacation request is {status.value}; only vacation is allowed"
                ]
                continue
            self.recompute_day(
                self.index_of(number),
                replace(current.with_absence(AbsenceType.VACATION), vacation_status=status),
            )
        return errors
