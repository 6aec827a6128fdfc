"""
Availability Endpoints
"""
from datetime import date
from typing import Any, Optional
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from slotwise.api import deps
from slotwise.core.config import settings
from slotwise.core.exceptions import UpstreamDataFetchFailure
from slotwise.schemas.availability import AvailabilityResponse, AvailabilityRangeResponse
from slotwise.services.availability import AvailabilityEngine
from slotwise.services.intervals import format_slot_range

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{collaborator_id}", response_model=AvailabilityResponse)
async def get_available_slots(
    collaborator_id: UUID,
    company_id: UUID = Query(...),
    target_date: date = Query(..., alias="date"),
    duration_minutes: int = Query(..., ge=5, le=720),
    slot_interval_minutes: Optional[int] = Query(None, ge=5, le=240),
    exclude_appointment_id: Optional[UUID] = Query(None),
    engine: AvailabilityEngine = Depends(deps.get_availability_engine),
    correlation_id: str = Depends(deps.get_correlation_id),
) -> Any:
    """
    List free slot starts of a collaborator on a date.
    Pass exclude_appointment_id when editing an appointment so it does not block itself.
    """
    interval = slot_interval_minutes or settings.default_slot_interval_minutes
    try:
        slots = await engine.compute_available_slots(
            company_id,
            collaborator_id,
            target_date,
            duration_minutes,
            interval,
            exclude_appointment_id=exclude_appointment_id,
            correlation_id=correlation_id,
        )
    except UpstreamDataFetchFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load availability",
        )

    return AvailabilityResponse(
        collaborator_id=collaborator_id,
        target_date=target_date,
        duration_minutes=duration_minutes,
        slot_interval_minutes=interval,
        slots=slots,
        ranges=[format_slot_range(target_date, slot, duration_minutes) for slot in slots],
    )


@router.get("/{collaborator_id}/range", response_model=AvailabilityRangeResponse)
async def get_available_slots_range(
    collaborator_id: UUID,
    company_id: UUID = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    duration_minutes: int = Query(..., ge=5, le=720),
    slot_interval_minutes: Optional[int] = Query(None, ge=5, le=240),
    engine: AvailabilityEngine = Depends(deps.get_availability_engine),
    correlation_id: str = Depends(deps.get_correlation_id),
) -> Any:
    """Free slot starts per day between start_date and end_date (inclusive)"""
    interval = slot_interval_minutes or settings.default_slot_interval_minutes
    try:
        days = await engine.compute_availability_range(
            company_id,
            collaborator_id,
            start_date,
            end_date,
            duration_minutes,
            interval,
            correlation_id=correlation_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UpstreamDataFetchFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load availability",
        )

    return AvailabilityRangeResponse(
        collaborator_id=collaborator_id,
        start_date=start_date,
        end_date=end_date,
        duration_minutes=duration_minutes,
        slot_interval_minutes=interval,
        days=days,
    )
