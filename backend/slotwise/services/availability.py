"""
Availability Engine

Computes the bookable slot starts of one collaborator on one date from:
- recurring weekly working schedules
- date-specific exceptions (day off, or blocked windows)
- existing non-cancelled appointments

The slot arithmetic in ``available_slots_for_day`` is pure; ``AvailabilityEngine``
only adds the data load and the clock. The same engine serves the slot listing
and the booking re-validation.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID

from slotwise.core.config import settings
from slotwise.core.exceptions import InvalidScheduleData
from slotwise.core.logging_config import bind_logger, new_correlation_id
from slotwise.core.timezone import local_now
from slotwise.services.intervals import (
    TimeInterval,
    anchor,
    ceil_to_grid,
    format_slot,
    interval_on,
    merge_busy_intervals,
    next_grid_after,
    parse_wall_time,
)
from slotwise.services.schedule_source import AppointmentRecord, DaySnapshot, ScheduleSource

logger = logging.getLogger(__name__)

Log = Union[logging.Logger, logging.LoggerAdapter]


@dataclass(frozen=True)
class DayOff:
    """A day-off exception exists for the date; nothing can be booked."""
    pass


@dataclass(frozen=True)
class Working:
    """Working intervals of the day and the busy windows carved out by exceptions."""
    intervals: Tuple[TimeInterval, ...]
    blocked: Tuple[TimeInterval, ...] = ()


DayStatus = Union[Working, DayOff]


def schedule_interval(target_date: date, record) -> TimeInterval:
    """
    Interval of a working schedule row or exception window on ``target_date``.

    Raises:
        InvalidScheduleData: carrying ``record`` when a bound is malformed
    """
    try:
        return interval_on(target_date, record.start_time, record.end_time)
    except InvalidScheduleData as e:
        raise InvalidScheduleData(str(e), record=record) from e


def appointment_interval(target_date: date, record: AppointmentRecord) -> TimeInterval:
    """Busy interval ``[start, start + duration)`` of an appointment."""
    duration = record.duration_minutes
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise InvalidScheduleData(f"Invalid duration {duration!r}", record=record)
    try:
        start = anchor(target_date, parse_wall_time(record.start_time))
    except InvalidScheduleData as e:
        raise InvalidScheduleData(str(e), record=record) from e
    return TimeInterval(start, start + timedelta(minutes=duration))


def resolve_day_status(snapshot: DaySnapshot, log: Log = logger) -> DayStatus:
    """
    Decide once whether the collaborator works on ``snapshot.target_date``.

    Any day-off exception wins over every schedule and window. Malformed
    schedule rows and exception windows are logged and skipped.
    """
    if any(exception.is_day_off for exception in snapshot.exceptions):
        log.info("Day off on %s", snapshot.target_date)
        return DayOff()

    intervals = []
    for schedule in snapshot.working_schedules:
        try:
            intervals.append(schedule_interval(snapshot.target_date, schedule))
        except InvalidScheduleData as e:
            log.warning("Skipping invalid working schedule %s: %s", e.record.id, e)

    blocked = []
    for exception in snapshot.exceptions:
        if exception.start_time is None and exception.end_time is None:
            continue
        try:
            blocked.append(schedule_interval(snapshot.target_date, exception))
        except InvalidScheduleData as e:
            log.warning("Skipping invalid schedule exception %s: %s", e.record.id, e)

    return Working(intervals=tuple(intervals), blocked=tuple(blocked))


def appointment_busy_intervals(snapshot: DaySnapshot, log: Log = logger) -> List[TimeInterval]:
    busy = []
    for appointment in snapshot.appointments:
        try:
            busy.append(appointment_interval(snapshot.target_date, appointment))
        except InvalidScheduleData as e:
            log.warning("Skipping invalid appointment %s: %s", e.record.id, e)
    return busy


def available_slots_for_day(
    snapshot: DaySnapshot,
    required_duration_minutes: int,
    slot_interval_minutes: int = 30,
    now: Optional[datetime] = None,
    log: Log = logger,
) -> List[str]:
    """
    Slot starts ("HH:MM", sorted, distinct) where ``required_duration_minutes``
    fits inside a working interval without overlapping busy time. After a
    conflict the walk resumes at the first grid point past the busy block.

    Args:
        snapshot: schedules, exceptions and appointments of the day
        required_duration_minutes: length of the appointment to place
        slot_interval_minutes: slot grid; also the step after an accepted slot
        now: local wall-clock time; past dates yield nothing and today's
            slots start at ``now`` rounded up to the grid. ``None`` disables
            the clock.
        log: logger or adapter carrying the correlation id
    """
    if required_duration_minutes <= 0:
        raise ValueError("required_duration_minutes must be positive")
    if slot_interval_minutes <= 0:
        raise ValueError("slot_interval_minutes must be positive")

    target_date = snapshot.target_date
    if now is not None and target_date < now.date():
        log.debug("Date %s is in the past", target_date)
        return []

    status = resolve_day_status(snapshot, log)
    if isinstance(status, DayOff) or not status.intervals:
        log.debug("No working hours on %s", target_date)
        return []

    busy = merge_busy_intervals(list(status.blocked) + appointment_busy_intervals(snapshot, log))
    log.debug("Busy on %s: %s", target_date, ", ".join(str(b) for b in busy) or "none")

    duration = timedelta(minutes=required_duration_minutes)
    step = timedelta(minutes=slot_interval_minutes)
    earliest = None
    if now is not None and target_date == now.date():
        earliest = ceil_to_grid(now, slot_interval_minutes)

    slots = set()
    for working in status.intervals:
        cursor = working.start
        if earliest is not None and cursor < earliest:
            cursor = earliest

        while cursor + duration <= working.end:
            candidate = TimeInterval(cursor, cursor + duration)
            conflict = next((b for b in busy if candidate.overlaps(b)), None)
            if conflict is None:
                slots.add(format_slot(cursor))
                cursor += step
            else:
                # Skip the whole busy block in one hop, landing past its end
                cursor = next_grid_after(conflict.end, slot_interval_minutes)

    return sorted(slots)


class AvailabilityEngine:
    """Loads day snapshots from a source and computes slots against the business clock."""

    def __init__(
        self,
        source: ScheduleSource,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.clock = clock or (lambda: local_now(settings.business_timezone))

    async def compute_available_slots(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        target_date: Union[date, datetime],
        required_duration_minutes: int,
        slot_interval_minutes: Optional[int] = None,
        exclude_appointment_id: Optional[UUID] = None,
        correlation_id: Optional[str] = None,
    ) -> List[str]:
        """
        Bookable slot starts for a collaborator on a date.

        Raises:
            UpstreamDataFetchFailure: the source could not load the day
        """
        if isinstance(target_date, datetime):
            target_date = target_date.date()
        interval = slot_interval_minutes or settings.default_slot_interval_minutes
        log = bind_logger(logger, correlation_id)

        snapshot = await self.source.load_day(
            company_id, collaborator_id, target_date, exclude_appointment_id
        )
        slots = available_slots_for_day(
            snapshot,
            required_duration_minutes,
            interval,
            now=self.clock(),
            log=log,
        )
        log.info(
            "Collaborator %s on %s: %d slots (duration=%s, grid=%s)",
            collaborator_id, target_date, len(slots), required_duration_minutes, interval,
        )
        return slots

    async def compute_availability_range(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        start_date: date,
        end_date: date,
        required_duration_minutes: int,
        slot_interval_minutes: Optional[int] = None,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, List[str]]:
        """
        Slots per day for an inclusive date range, keyed "YYYY-MM-DD".
        Days without any slot are omitted.
        """
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        if (end_date - start_date).days + 1 > settings.max_availability_range_days:
            raise ValueError(
                f"Date range is limited to {settings.max_availability_range_days} days"
            )

        correlation_id = correlation_id or new_correlation_id()
        result = {}
        current = start_date
        while current <= end_date:
            slots = await self.compute_available_slots(
                company_id,
                collaborator_id,
                current,
                required_duration_minutes,
                slot_interval_minutes,
                correlation_id=correlation_id,
            )
            if slots:
                result[current.isoformat()] = slots
            current += timedelta(days=1)
        return result
