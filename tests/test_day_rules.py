"""Tests for day entries and the validation engine."""

from datetime import date

import pytest

from app.services.day_rules import (AbsenceType, DayEntry, can_edit_absence,
                                    can_edit_hours, days_in_month, format_duration,
                                    format_minutes, is_future_day, is_weekend,
                                    parse_hhmm, validate_day, validate_month)

TODAY = date(2025, 6, 18)


def test_parse_hhmm():
    assert parse_hhmm("00:00") == 0
    assert parse_hhmm("08:30") == 510
    assert parse_hhmm("23:59") == 1439
    assert parse_hhmm("") is None
    assert parse_hhmm(None) is None


@pytest.mark.parametrize("bad", ["8:30", "24:00", "12:60", "ab:cd", "12-30"])
def test_parse_hhmm_rejects_malformed(bad):
    with pytest.raises(ValueError):
        parse_hhmm(bad)


def test_formatting():
    assert format_minutes(510) == "8:30"
    assert format_minutes(0) == "0:00"
    assert format_duration(510) == "8h 30m"


def test_calendar_helpers():
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2025, 2) == 28
    assert is_weekend(2025, 6, 21)  # Saturday
    assert is_weekend(2025, 6, 22)  # Sunday
    assert not is_weekend(2025, 6, 23)
    assert is_future_day(2025, 6, 19, TODAY)
    assert not is_future_day(2025, 6, 18, TODAY)


def test_edit_permissions():
    assert can_edit_hours(2025, 6, 18, TODAY)
    assert not can_edit_hours(2025, 6, 19, TODAY)  # future
    assert not can_edit_hours(2025, 6, 14, TODAY)  # Saturday
    assert can_edit_absence(2025, 6, 30)  # future weekday may be pre-booked
    assert not can_edit_absence(2025, 6, 15)


def test_full_day_is_valid():
    entry = DayEntry(3, "08:00", "12:00", "13:00", "17:00")
    result = validate_day(entry)
    assert result.ok
    assert result.total_minutes == 480
    assert entry.total_minutes == 480


def test_more_than_eight_hours_is_an_error():
    result = validate_day(DayEntry(3, "08:00", "12:30", "13:00", "17:00"))
    assert result.total_minutes == 510
    assert result.errors == ("more than 8 hours recorded (8h 30m)",)


def test_end_before_start_is_an_error_and_counts_nothing():
    result = validate_day(DayEntry(3, "12:00", "08:00", "13:00", "15:00"))
    assert result.total_minutes == 120
    assert result.errors == ("morning: end time precedes start time",)


def test_incomplete_segment_is_ignored():
    result = validate_day(DayEntry(3, "08:00", None, "13:00", "15:00"))
    assert result.ok
    assert result.total_minutes == 120


def test_absence_day_counts_zero():
    entry = DayEntry(3, absence_type=AbsenceType.MEDICAL_LEAVE, medical_justification_ref="note.pdf")
    assert validate_day(entry).ok
    assert entry.total_minutes == 0


def test_absence_with_hours_is_rejected():
    with pytest.raises(ValueError):
        DayEntry(3, "08:00", "12:00", absence_type=AbsenceType.VACATION)


def test_empty_strings_normalise_to_none():
    entry = DayEntry(3, "", "", "", "")
    assert entry.times() == (None, None, None, None)
    assert not entry.has_content()


def test_with_absence_clears_hours_and_keeps_ref_for_medical_leave_only():
    entry = DayEntry(3, "08:00", "12:00")
    medical = entry.with_absence(AbsenceType.MEDICAL_LEAVE, "scan-1.pdf")
    assert medical.times() == (None, None, None, None)
    assert medical.medical_justification_ref == "scan-1.pdf"

    vacation = entry.with_absence(AbsenceType.VACATION, "ignored.pdf")
    assert vacation.medical_justification_ref is None


def test_with_hours_clears_absence():
    entry = DayEntry(3, absence_type=AbsenceType.VACATION)
    back = entry.with_hours("09:00", "13:00")
    assert back.absence_type is AbsenceType.NONE
    assert back.total_minutes == 240


def test_validate_month_collects_every_error():
    days = [
        DayEntry(2, "08:00", "12:00"),
        DayEntry(3, "12:00", "08:00"),
        DayEntry(4, "07:00", "12:00", "13:00", "18:00"),
    ]
    result = validate_month(days)
    assert not result.ok
    assert set(result.per_day_errors) == {3, 4}
    assert result.messages == [
        "Day 3: morning: end time precedes start time",
        "Day 4: more than 8 hours recorded (10h 0m)",
    ]
