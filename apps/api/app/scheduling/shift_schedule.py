"""
Work-hour slots per shift type.

Every shift starts with the same eight one-hour slots around a lunch gap
(11:30-12:30). EXTENDED_9_5H adds one 90-minute slot, so its planned
capacity counts 1.5 hours; OVERTIME_11H skips the 16:30-17:00 break and adds
three ordinary hours.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

from app.core.errors import ConfigurationError, ValidationError
from app.models.enums import ShiftType

ONE = Decimal("1")


@dataclass(frozen=True)
class HourSlot:
    hour: int
    start: str  # HH:MM
    end: str  # HH:MM
    coefficient: Decimal = ONE

    @property
    def minutes(self) -> int:
        start = parse_hhmm(self.start)
        end = parse_hhmm(self.end)
        return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


BASE_HOURS = (
    HourSlot(1, "07:30", "08:30"),
    HourSlot(2, "08:30", "09:30"),
    HourSlot(3, "09:30", "10:30"),
    HourSlot(4, "10:30", "11:30"),
    # lunch 11:30-12:30
    HourSlot(5, "12:30", "13:30"),
    HourSlot(6, "13:30", "14:30"),
    HourSlot(7, "14:30", "15:30"),
    HourSlot(8, "15:30", "16:30"),
)

SHIFT_SCHEDULES = {
    ShiftType.NORMAL_8H: BASE_HOURS,
    ShiftType.EXTENDED_9_5H: BASE_HOURS + (
        HourSlot(9, "16:30", "18:00", Decimal("1.5")),
    ),
    ShiftType.OVERTIME_11H: BASE_HOURS + (
        # break 16:30-17:00
        HourSlot(9, "17:00", "18:00"),
        HourSlot(10, "18:00", "19:00"),
        HourSlot(11, "19:00", "20:00"),
    ),
}

MAX_WORK_HOUR = max(slot.hour for slots in SHIFT_SCHEDULES.values() for slot in slots)


def parse_shift_type(value) -> ShiftType:
    """Parse user input into a ShiftType (ValidationError on unknown values)."""
    if isinstance(value, ShiftType):
        return value
    try:
        return ShiftType(str(value))
    except ValueError:
        raise ValidationError(f"Unknown shift type: {value}")


def schedule_for(shift_type) -> list[HourSlot]:
    """Ordered slots for a shift type. Unknown types are a configuration error."""
    try:
        slots = SHIFT_SCHEDULES[ShiftType(shift_type)]
    except (KeyError, ValueError):
        raise ConfigurationError(f"No shift schedule configured for {shift_type!r}")
    return list(slots)


def coefficient_for(shift_type, work_hour: int) -> Decimal:
    for slot in schedule_for(shift_type):
        if slot.hour == work_hour:
            return slot.coefficient
    return ONE


def shift_hours(shift_type) -> Decimal:
    """Paid production hours of a shift (8, 9.5 or 11)."""
    return sum((slot.coefficient for slot in schedule_for(shift_type)), Decimal("0"))


def parse_hhmm(value: str) -> time:
    try:
        hh, mm = str(value).split(":")
        return time(int(hh), int(mm))
    except ValueError:
        raise ValidationError(f"Invalid time string: {value}")


def current_work_hour(at: time) -> Optional[int]:
    """Work hour whose slot contains a wall-clock time, in any shift; None in breaks."""
    for slots in SHIFT_SCHEDULES.values():
        for slot in slots:
            if parse_hhmm(slot.start) <= at < parse_hhmm(slot.end):
                return slot.hour
    return None


def slot_bounds(work_date: date, slot: HourSlot) -> tuple[datetime, datetime]:
    """Absolute UTC start/end of a slot on a given day."""
    start = datetime.combine(work_date, parse_hhmm(slot.start), tzinfo=timezone.utc)
    end = datetime.combine(work_date, parse_hhmm(slot.end), tzinfo=timezone.utc)
    return start, end
