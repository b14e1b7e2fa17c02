"""Slot tables per shift type."""
from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from app.core.errors import ConfigurationError, ValidationError
from app.models.enums import ShiftType
from app.scheduling.shift_schedule import (
    MAX_WORK_HOUR,
    coefficient_for,
    current_work_hour,
    parse_hhmm,
    parse_shift_type,
    schedule_for,
    shift_hours,
    slot_bounds,
)


def _minutes(hhmm: str) -> int:
    t = parse_hhmm(hhmm)
    return t.hour * 60 + t.minute


@pytest.mark.parametrize("shift_type, expected", [
    (ShiftType.NORMAL_8H, 8),
    (ShiftType.EXTENDED_9_5H, 9),
    (ShiftType.OVERTIME_11H, 11),
])
def test_slot_count_and_contiguous_hours(shift_type, expected):
    slots = schedule_for(shift_type)
    assert len(slots) == expected
    assert [slot.hour for slot in slots] == list(range(1, expected + 1))


@pytest.mark.parametrize("shift_type", list(ShiftType))
def test_no_slot_overlaps_lunch(shift_type):
    lunch_start, lunch_end = _minutes("11:30"), _minutes("12:30")
    for slot in schedule_for(shift_type):
        assert _minutes(slot.end) <= lunch_start or _minutes(slot.start) >= lunch_end


@pytest.mark.parametrize("shift_type", list(ShiftType))
def test_slots_are_ordered_and_non_overlapping(shift_type):
    slots = schedule_for(shift_type)
    for earlier, later in zip(slots, slots[1:]):
        assert _minutes(earlier.end) <= _minutes(later.start)


def test_only_extended_hour_nine_is_fractional():
    for shift_type in ShiftType:
        for slot in schedule_for(shift_type):
            if shift_type == ShiftType.EXTENDED_9_5H and slot.hour == 9:
                assert slot.coefficient == Decimal("1.5")
                assert slot.minutes == 90
            else:
                assert slot.coefficient == Decimal("1")
                assert slot.minutes == 60


def test_coefficient_lookup():
    assert coefficient_for(ShiftType.EXTENDED_9_5H, 9) == Decimal("1.5")
    assert coefficient_for(ShiftType.OVERTIME_11H, 9) == Decimal("1")
    assert coefficient_for("NORMAL_8H", 3) == Decimal("1")
    # Hours outside the schedule count as ordinary hours
    assert coefficient_for(ShiftType.NORMAL_8H, 10) == Decimal("1")


def test_shift_hours():
    assert shift_hours(ShiftType.NORMAL_8H) == Decimal("8")
    assert shift_hours(ShiftType.EXTENDED_9_5H) == Decimal("9.5")
    assert shift_hours(ShiftType.OVERTIME_11H) == Decimal("11")


def test_overtime_skips_the_afternoon_break():
    slots = {slot.hour: slot for slot in schedule_for(ShiftType.OVERTIME_11H)}
    assert (slots[8].end, slots[9].start) == ("16:30", "17:00")
    assert slots[11].end == "20:00"
    assert MAX_WORK_HOUR == 11


def test_unknown_shift_type_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        schedule_for("NIGHT_12H")


def test_parse_shift_type():
    assert parse_shift_type("EXTENDED_9_5H") is ShiftType.EXTENDED_9_5H
    assert parse_shift_type(ShiftType.NORMAL_8H) is ShiftType.NORMAL_8H
    with pytest.raises(ValidationError):
        parse_shift_type("normal")


@pytest.mark.parametrize("value", ["7.30", "25:00", "ab:cd", ""])
def test_bad_time_strings_are_rejected(value):
    with pytest.raises(ValidationError):
        parse_hhmm(value)


def test_slot_bounds_are_utc_on_the_work_date():
    slot = schedule_for(ShiftType.EXTENDED_9_5H)[-1]
    start, end = slot_bounds(date(2026, 3, 2), slot)
    assert start == datetime(2026, 3, 2, 16, 30, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)
    assert (end - start).total_seconds() == 90 * 60


@pytest.mark.parametrize("at, expected", [
    (time(7, 30), 1),
    (time(11, 45), None),  # lunch
    (time(16, 29), 8),
    (time(16, 45), 9),  # extended hour 9 starts before overtime hour 9
    (time(18, 30), 10),
    (time(20, 0), None),
])
def test_current_work_hour(at, expected):
    assert current_work_hour(at) == expected
