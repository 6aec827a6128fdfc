"""
Scheduling and booking errors
"""
from typing import List, Optional


class SchedulingError(Exception):
    """Base class for availability and booking errors."""
    pass


class InvalidScheduleData(SchedulingError):
    """A schedule, exception or appointment record is structurally malformed."""

    def __init__(self, message: str, record: Optional[object] = None):
        super().__init__(message)
        self.record = record


class UpstreamDataFetchFailure(SchedulingError):
    """Loading schedules, exceptions or appointments from the store failed."""
    pass


class SlotUnavailable(SchedulingError):
    """The requested slot is no longer free. Callers re-query and re-prompt."""

    def __init__(self, requested_slot: str, available_slots: Optional[List[str]] = None):
        super().__init__(f"Slot {requested_slot} is no longer available")
        self.requested_slot = requested_slot
        self.available_slots = available_slots or []


class PartialBookingFailure(SchedulingError):
    """The appointment row was written but linking its services failed; it was rolled back."""
    pass


class AppointmentNotFound(SchedulingError):
    """The appointment to reschedule does not exist for the company."""
    pass
