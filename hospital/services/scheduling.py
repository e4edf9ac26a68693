"""
Clock arithmetic for doctor schedules and appointment booking.

All times of day are "HH:MM" strings on a 24-hour clock and are compared as
minutes since midnight. Intervals are half-open: an appointment at 09:00 for
30 minutes occupies [540, 570) and does not collide with one starting at 09:30.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple
import re

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
DEFAULT_WORKING_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]
SLOT_DURATIONS = (15, 20, 30, 45, 60)
DEFAULT_APPOINTMENT_MINUTES = 30

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def is_valid_time(value: str) -> bool:
    return bool(value) and bool(TIME_PATTERN.match(value))


def parse_time(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    if not is_valid_time(value):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def format_time_for_display(value: str) -> str:
    """ "13:30" -> "1:30 PM" """
    total = parse_time(value)
    hours, minutes = divmod(total, 60)
    suffix = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {suffix}"


def day_name(value: date) -> str:
    return WEEKDAYS[value.weekday()]


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and end_a > start_b


@dataclass
class WorkingHours:
    """A doctor's weekly template."""
    working_days: List[str] = field(default_factory=lambda: list(DEFAULT_WORKING_DAYS))
    start_time: str = "09:00"
    end_time: str = "17:00"
    break_start: str = "13:00"
    break_end: str = "14:00"
    slot_duration: int = 30

    def works_on(self, value: date) -> bool:
        return day_name(value) in self.working_days


def generate_time_slots(hours: WorkingHours, on_date: date) -> List[str]:
    """Bookable start times for one day, skipping the break."""
    if not hours.works_on(on_date):
        return []

    current = parse_time(hours.start_time)
    end = parse_time(hours.end_time)
    break_start = parse_time(hours.break_start)
    break_end = parse_time(hours.break_end)
    step = hours.slot_duration

    slots = []
    while current + step <= end:
        if break_start <= current < break_end:
            current = break_end
            continue
        slots.append(format_minutes(current))
        current += step
    return slots


def check_working_time(hours: WorkingHours, on_date: date, time: str) -> Tuple[bool, Optional[str]]:
    """Whether a start time falls inside working hours on a given date."""
    if not hours.works_on(on_date):
        return False, "Doctor does not work on this day"

    minute = parse_time(time)
    if minute < parse_time(hours.start_time) or minute >= parse_time(hours.end_time):
        return False, "Outside working hours"

    if parse_time(hours.break_start) <= minute < parse_time(hours.break_end):
        return False, "During break time"

    return True, None


def next_available(hours: WorkingHours, now: datetime) -> str:
    today = day_name(now.date())
    current = now.hour * 60 + now.minute

    if today in hours.working_days:
        if current < parse_time(hours.start_time):
            return f"Today at {hours.start_time}"
        if parse_time(hours.break_start) <= current < parse_time(hours.break_end):
            return f"Today at {hours.break_end}"
        if current < parse_time(hours.end_time):
            return "Available Now"

    index = WEEKDAYS.index(today)
    for offset in range(1, 8):
        candidate = WEEKDAYS[(index + offset) % 7]
        if candidate in hours.working_days:
            return f"Next {candidate.capitalize()} at {hours.start_time}"

    return "Not Available"


def overlapping(
    time: str,
    duration: int,
    booked: Sequence[Tuple[str, Optional[int]]],
) -> List[int]:
    """Indexes of booked (time, duration) pairs that overlap the requested window."""
    start = parse_time(time)
    end = start + duration
    hits = []
    for index, (other_time, other_duration) in enumerate(booked):
        other_start = parse_time(other_time)
        other_end = other_start + (other_duration or DEFAULT_APPOINTMENT_MINUTES)
        if intervals_overlap(start, end, other_start, other_end):
            hits.append(index)
    return hits


def bmi(weight_kg: Optional[float], height_cm: Optional[float]) -> Optional[float]:
    if not weight_kg or not height_cm:
        return None
    metres = height_cm / 100
    return round(weight_kg / (metres * metres), 1)


def age_on(birth: date, today: date) -> int:
    years = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        years -= 1
    return years
