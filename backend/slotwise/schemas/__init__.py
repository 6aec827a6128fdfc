"""
Schemas module initialization
"""
from slotwise.schemas.availability import (
    AvailabilityResponse,
    AvailabilityRangeResponse,
)
from slotwise.schemas.booking import (
    BookingCreate,
    BookingReschedule,
    BookingResponse,
    AppointmentResponse,
    SlotConflictResponse,
)
