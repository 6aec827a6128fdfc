"""
Interval arithmetic shared by slot listing and booking re-validation.

All intervals of one computation are half-open ``[start, end)`` ranges
anchored on the same calendar date.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List

from slotwise.core.exceptions import InvalidScheduleData

# Busy blocks closer than this are treated as contiguous so no sliver slot
# can appear between back-to-back appointments.
BUSY_ADJACENCY_TOLERANCE = timedelta(minutes=1)

SLOT_FORMAT = "%H:%M"
SLOT_RANGE_SEPARATOR = " às "

_WALL_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime

    def overlaps(self, other: "TimeInterval") -> bool:
        """Strict intersection; touching intervals do not overlap."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.strftime(SLOT_FORMAT)}-{self.end.strftime(SLOT_FORMAT)}"


def parse_wall_time(value: Any) -> time:
    """
    Convert a stored wall-clock value to ``datetime.time`` at minute precision.

    Accepts ``time``, ``timedelta`` since midnight (some drivers return TIME
    columns that way) and ``"HH:MM"`` / ``"HH:MM:SS"`` strings.

    Raises:
        InvalidScheduleData: value is missing or not a wall-clock time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, timedelta):
        if value < timedelta(0) or value >= timedelta(days=1):
            raise InvalidScheduleData(f"Time offset out of range: {value}")
        return (datetime.min + value).time().replace(second=0, microsecond=0)
    if isinstance(value, str):
        match = _WALL_TIME_RE.match(value.strip())
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            if hour < 24 and minute < 60:
                return time(hour, minute)
        raise InvalidScheduleData(f"Malformed time string: {value!r}")
    raise InvalidScheduleData(f"Cannot convert {type(value).__name__} to time")


def anchor(target_date: date, wall_time: time) -> datetime:
    return datetime.combine(target_date, wall_time)


def interval_on(target_date: date, start_value: Any, end_value: Any) -> TimeInterval:
    """
    Build an interval on ``target_date`` from two wall-clock values.

    Raises:
        InvalidScheduleData: a bound is malformed, or the range is empty or
            crosses midnight (not supported)
    """
    start = anchor(target_date, parse_wall_time(start_value))
    end = anchor(target_date, parse_wall_time(end_value))
    if end <= start:
        raise InvalidScheduleData(
            f"Interval {start_value}-{end_value} is empty or crosses midnight"
        )
    return TimeInterval(start, end)


def ceil_to_grid(moment: datetime, step_minutes: int) -> datetime:
    """
    Round ``moment`` up to the next multiple of ``step_minutes`` counted from
    midnight. Moments already on the grid are returned unchanged.
    """
    midnight = datetime.combine(moment.date(), time.min)
    step = timedelta(minutes=step_minutes)
    steps = -(-(moment - midnight) // step)
    return midnight + steps * step


def next_grid_after(moment: datetime, step_minutes: int) -> datetime:
    """
    First multiple of ``step_minutes`` counted from midnight that lies strictly
    after ``moment``. A moment already on the grid advances one full step.
    """
    midnight = datetime.combine(moment.date(), time.min)
    step = timedelta(minutes=step_minutes)
    return midnight + ((moment - midnight) // step + 1) * step


def merge_busy_intervals(
    intervals: Iterable[TimeInterval],
    tolerance: timedelta = BUSY_ADJACENCY_TOLERANCE,
) -> List[TimeInterval]:
    """
    Sort and coalesce busy intervals. An interval starting no later than the
    previous end plus ``tolerance`` is folded into the previous one.
    """
    ordered = sorted(intervals, key=lambda interval: interval.start)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end + tolerance:
            if current.end > last.end:
                merged[-1] = TimeInterval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def format_slot(moment: datetime) -> str:
    return moment.strftime(SLOT_FORMAT)


def format_slot_range(target_date: date, slot: str, duration_minutes: int) -> str:
    """Render a slot start as ``"HH:MM às HH:MM"`` for display."""
    start = anchor(target_date, parse_wall_time(slot))
    end = start + timedelta(minutes=duration_minutes)
    return f"{format_slot(start)}{SLOT_RANGE_SEPARATOR}{format_slot(end)}"


def extract_start_time(value: str) -> str:
    """
    Normalize a requested booking time to ``"HH:MM"``.

    Clients may send the start alone (``"09:30"``, ``"09:30:00"``) or the
    displayed range (``"09:30 às 10:00"``); only the start is kept.

    Raises:
        InvalidScheduleData: no valid start time can be read
    """
    parts = value.split()
    if not parts:
        raise InvalidScheduleData("Empty booking time")
    return parse_wall_time(parts[0]).strftime(SLOT_FORMAT)
