"""
Range copy: propagate one day's hours or absence across a contiguous span of
the same month.

Eligibility is decided day by day rather than by pre-filtering the range:
weekends are never written, hours are never pasted into the future, and a
vacation source stops extending once the worker's quota is used up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Sequence

from app.core.exceptions import SourceNotCopyable
from app.services.day_rules import AbsenceType, DayEntry, is_future_day, is_weekend, validate_day
from app.services.month_ledger import MonthLedger

logger = logging.getLogger(__name__)

NO_ELIGIBLE_DAYS = "no eligible days in range"


@dataclass(frozen=True)
class RangeCopyResult:
    days: tuple[DayEntry, ...]
    affected_days: tuple[int, ...]
    quota_left: Optional[int] = None

    @property
    def affected(self) -> int:
        return len(self.affected_days)

    @property
    def message(self) -> str:
        if not self.affected_days:
            return NO_ELIGIBLE_DAYS
        return f"applied to {self.affected} day(s) in the selected range"


def check_source(entry: DayEntry) -> None:
    """Raise ``SourceNotCopyable`` unless ``entry`` can seed a range copy."""
    if not entry.has_content():
        raise SourceNotCopyable(f"Day {entry.day} has no hours or absence to copy")
    if entry.absence_type is AbsenceType.NONE:
        result = validate_day(entry)
        if result.errors:
            raise SourceNotCopyable(f"Day {entry.day} has errors: {'; '.join(result.errors)}")


def target_indices(source_index: int, target_index: int) -> range:
    """Indices written by a copy: everything up to and including the target,
    excluding the source itself, whichever side the target is on.

    A backward copy covers ``[target, source - 1]`` rather than
    ``[target + 1, source]``, so the source day is never overwritten.
    """
    if target_index > source_index:
        return range(source_index + 1, target_index + 1)
    return range(target_index, source_index)


def _copied(source: DayEntry, target: DayEntry) -> DayEntry:
    if source.absence_type is AbsenceType.NONE:
        return target.with_hours(*source.times())
    # Justification files are never copied.
    return target.with_absence(source.absence_type)


def copy_range(
    days: Sequence[DayEntry],
    source_index: int,
    target_index: int,
    *,
    year: int,
    month: int,
    today: date,
    vacation_quota: int,
) -> RangeCopyResult:
    """Return the new day sequence after copying ``days[source_index]``."""
    source = days[source_index]
    check_source(source)
    if not 0 <= target_index < len(days):
        raise IndexError(f"Target index {target_index} out of range")

    updated = list(days)
    affected: list[int] = []
    copies_hours = source.absence_type is AbsenceType.NONE
    copies_vacation = source.absence_type is AbsenceType.VACATION
    remaining = vacation_quota

    for i in target_indices(source_index, target_index):
        target = updated[i]
        if is_weekend(year, month, target.day):
            continue
        if copies_hours and is_future_day(year, month, target.day, today):
            continue
        if copies_vacation and target.absence_type is not AbsenceType.VACATION:
            # Only newly converted days consume quota.
            if remaining <= 0:
                continue
            remaining -= 1
        updated[i] = _copied(source, target)
        affected.append(target.day)

    logger.debug(
        "Range copy of day %d over %d..%d affected %d day(s)",
        source.day,
        min(source_index, target_index) + 1,
        max(source_index, target_index) + 1,
        len(affected),
    )
    return RangeCopyResult(
        days=tuple(updated),
        affected_days=tuple(affected),
        quota_left=remaining if copies_vacation else None,
    )


class CopyState(str, Enum):
    IDLE = "idle"
    SOURCE_SELECTED = "sourceSelected"


class RangeCopyGesture:
    """Two-click gesture: the first click picks the source, the second pastes.

    Clicking the source again cancels. Any paste returns to ``IDLE``.
    """

    def __init__(self, ledger: MonthLedger):
        self.ledger = ledger
        self.state = CopyState.IDLE
        self.source_index: Optional[int] = None

    def cancel(self) -> None:
        self.state = CopyState.IDLE
        self.source_index = None

    def click(self, index: int, *, today: date, vacation_quota: int) -> Optional[RangeCopyResult]:
        if self.state is CopyState.IDLE:
            check_source(self.ledger.days[index])
            self.state = CopyState.SOURCE_SELECTED
            self.source_index = index
            return None

        source_index = self.source_index
        self.cancel()
        if index == source_index:
            return None

        result = copy_range(
            self.ledger.days,
            source_index,
            index,
            year=self.ledger.year,
            month=self.ledger.month,
            today=today,
            vacation_quota=vacation_quota,
        )
        for day in result.affected_days:
            i = self.ledger.index_of(day)
            self.ledger.recompute_day(i, result.days[i])
        return result
