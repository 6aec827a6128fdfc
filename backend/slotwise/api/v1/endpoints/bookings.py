"""
Booking Endpoints
"""
from typing import Any
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from slotwise.api import deps
from slotwise.core.config import settings
from slotwise.core.exceptions import (
    AppointmentNotFound,
    PartialBookingFailure,
    SlotUnavailable,
    UpstreamDataFetchFailure,
)
from slotwise.schemas.booking import (
    AppointmentResponse,
    BookingCreate,
    BookingReschedule,
    BookingResponse,
    SlotConflictResponse,
)
from slotwise.services.booking import BookingArbiter

logger = logging.getLogger(__name__)

router = APIRouter()

CONFLICT_RESPONSES = {
    status.HTTP_409_CONFLICT: {"model": SlotConflictResponse},
}


def slot_conflict_response(e: SlotUnavailable) -> JSONResponse:
    """409 with a preview of what is free now so the client can re-prompt"""
    body = SlotConflictResponse(
        detail="Este horário não está mais disponível. Por favor, escolha outro horário.",
        requested_slot=e.requested_slot,
        available_slots_count=len(e.available_slots),
        available_slots=e.available_slots[:settings.slot_preview_count],
    )
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump())


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=CONFLICT_RESPONSES,
)
async def create_booking(
    booking_in: BookingCreate,
    arbiter: BookingArbiter = Depends(deps.get_booking_arbiter),
    correlation_id: str = Depends(deps.get_correlation_id),
) -> Any:
    """
    Book a slot. The slot is re-validated against current data right before
    the appointment is written.
    """
    try:
        appointment = await arbiter.attempt_booking(booking_in, correlation_id)
    except SlotUnavailable as e:
        return slot_conflict_response(e)
    except PartialBookingFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Booking could not be completed; nothing was saved",
        )
    except UpstreamDataFetchFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load availability",
        )

    return BookingResponse(
        appointment_id=appointment.id,
        message="Agendamento criado com sucesso",
        appointment=AppointmentResponse.model_validate(appointment),
    )


@router.put(
    "/{appointment_id}/schedule",
    response_model=BookingResponse,
    responses=CONFLICT_RESPONSES,
)
async def reschedule_booking(
    appointment_id: UUID,
    reschedule_in: BookingReschedule,
    arbiter: BookingArbiter = Depends(deps.get_booking_arbiter),
    correlation_id: str = Depends(deps.get_correlation_id),
) -> Any:
    """Move an appointment to another date, time or collaborator."""
    try:
        appointment = await arbiter.reschedule(appointment_id, reschedule_in, correlation_id)
    except AppointmentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found",
        )
    except SlotUnavailable as e:
        return slot_conflict_response(e)
    except PartialBookingFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Reschedule could not be completed; nothing was changed",
        )
    except UpstreamDataFetchFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load availability",
        )

    return BookingResponse(
        appointment_id=appointment.id,
        message="Agendamento atualizado com sucesso",
        appointment=AppointmentResponse.model_validate(appointment),
    )
