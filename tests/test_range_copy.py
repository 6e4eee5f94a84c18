"""Tests for the range-copy operator and the two-click gesture."""

from datetime import date

import pytest

from app.core.exceptions import SourceNotCopyable
from app.services.day_rules import AbsenceType, DayEntry
from app.services.month_ledger import MonthLedger
from app.services.range_copy import (NO_ELIGIBLE_DAYS, CopyState, RangeCopyGesture,
                                     copy_range, target_indices)

TODAY = date(2025, 6, 18)
HOURS = ("08:00", "12:00", "13:00", "17:00")


def _ledger(*entries: DayEntry) -> MonthLedger:
    return MonthLedger(1, 2025, 6, entries)


def _copy(ledger: MonthLedger, source_day: int, target_day: int, quota: int = 23):
    return copy_range(
        ledger.days,
        source_day - 1,
        target_day - 1,
        year=2025,
        month=6,
        today=TODAY,
        vacation_quota=quota,
    )


def test_target_indices_exclude_source_on_both_sides():
    assert list(target_indices(2, 5)) == [3, 4, 5]
    assert list(target_indices(5, 2)) == [2, 3, 4]


def test_hours_skip_weekends():
    ledger = _ledger(DayEntry(12, *HOURS))  # Thursday
    result = _copy(ledger, 12, 17)
    # 13 Fri, 16 Mon, 17 Tue; 14 and 15 are the weekend
    assert result.affected_days == (13, 16, 17)
    assert result.days[13].times() == (None, None, None, None)
    assert result.days[15].times() == HOURS
    assert result.message == "applied to 3 day(s) in the selected range"


def test_hours_skip_future_days():
    ledger = _ledger(DayEntry(17, *HOURS))
    result = _copy(ledger, 17, 20)
    assert result.affected_days == (18,)


def test_backwards_copy_includes_target():
    ledger = _ledger(DayEntry(18, *HOURS))
    result = _copy(ledger, 18, 16)
    assert result.affected_days == (16, 17)


def test_absence_copy_reaches_future_days_without_justification():
    ledger = _ledger(
        DayEntry(23, absence_type=AbsenceType.MEDICAL_LEAVE, medical_justification_ref="note.pdf")
    )
    result = _copy(ledger, 23, 25)
    assert result.affected_days == (24, 25)
    assert result.days[23].absence_type is AbsenceType.MEDICAL_LEAVE
    assert result.days[23].medical_justification_ref is None


def test_vacation_copy_stops_when_quota_runs_out():
    ledger = _ledger(DayEntry(2, absence_type=AbsenceType.VACATION))
    result = _copy(ledger, 2, 5, quota=1)
    assert result.affected_days == (3,)
    assert result.quota_left == 0
    assert result.days[3].absence_type is AbsenceType.NONE


def test_existing_vacation_days_do_not_consume_quota():
    ledger = _ledger(
        DayEntry(2, absence_type=AbsenceType.VACATION),
        DayEntry(3, absence_type=AbsenceType.VACATION),
    )
    result = _copy(ledger, 2, 4, quota=1)
    assert result.affected_days == (3, 4)
    assert result.quota_left == 0


def test_weekend_only_range_has_no_eligible_days():
    ledger = _ledger(DayEntry(13, *HOURS))
    result = _copy(ledger, 13, 15)
    assert result.affected == 0
    assert result.message == NO_ELIGIBLE_DAYS
    assert result.days == ledger.days


def test_source_must_be_copyable():
    with pytest.raises(SourceNotCopyable):
        _copy(_ledger(), 2, 4)
    with pytest.raises(SourceNotCopyable):
        _copy(_ledger(DayEntry(2, "12:00", "08:00")), 2, 4)


def test_copy_does_not_mutate_input():
    ledger = _ledger(DayEntry(2, *HOURS))
    before = ledger.days
    _copy(ledger, 2, 4)
    assert ledger.days == before
    assert not ledger.dirty


def test_gesture_select_then_paste():
    ledger = _ledger(DayEntry(2, *HOURS))
    gesture = RangeCopyGesture(ledger)

    assert gesture.click(1, today=TODAY, vacation_quota=23) is None
    assert gesture.state is CopyState.SOURCE_SELECTED

    result = gesture.click(3, today=TODAY, vacation_quota=23)
    assert result.affected_days == (3, 4)
    assert gesture.state is CopyState.IDLE
    assert ledger.day(4).times() == HOURS
    assert ledger.dirty


def test_gesture_clicking_source_again_cancels():
    ledger = _ledger(DayEntry(2, *HOURS))
    gesture = RangeCopyGesture(ledger)
    gesture.click(1, today=TODAY, vacation_quota=23)
    assert gesture.click(1, today=TODAY, vacation_quota=23) is None
    assert gesture.state is CopyState.IDLE
    assert not ledger.dirty
