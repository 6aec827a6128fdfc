"""
Pydantic Schemas for Bookings
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from slotwise.core.exceptions import InvalidScheduleData
from slotwise.models.appointment import AppointmentStatus
from slotwise.services.intervals import extract_start_time


def _normalize_time(value: str) -> str:
    try:
        return extract_start_time(value)
    except InvalidScheduleData as e:
        raise ValueError(str(e)) from e


def _unique_ids(value: Optional[List[UUID]]) -> Optional[List[UUID]]:
    if value is not None and len(set(value)) != len(value):
        raise ValueError("service_ids must not contain duplicates")
    return value


# ============== Request Schemas ==============

class BookingCreate(BaseModel):
    """Schema for booking a slot"""
    company_id: UUID
    collaborator_id: UUID
    client_id: UUID
    client_nickname: Optional[str] = Field(None, max_length=255)
    service_ids: List[UUID] = Field(..., min_length=1)
    appointment_date: date = Field(..., alias="date")
    # "HH:MM", "HH:MM:SS" or the displayed "HH:MM às HH:MM"
    appointment_time: str = Field(..., alias="time")
    total_duration_minutes: int = Field(..., ge=5, le=720)
    total_price: Decimal = Field(..., ge=0)
    observations: Optional[str] = None
    # Must match the grid the client listed slots with
    slot_interval_minutes: Optional[int] = Field(None, ge=5, le=240)

    @field_validator("appointment_time")
    @classmethod
    def normalize_time(cls, value: str) -> str:
        return _normalize_time(value)

    @field_validator("service_ids")
    @classmethod
    def unique_services(cls, value: List[UUID]) -> List[UUID]:
        return _unique_ids(value)

    class Config:
        populate_by_name = True


class BookingReschedule(BaseModel):
    """Schema for moving an existing appointment to another slot"""
    company_id: UUID
    appointment_date: date = Field(..., alias="date")
    appointment_time: str = Field(..., alias="time")
    total_duration_minutes: int = Field(..., ge=5, le=720)
    collaborator_id: Optional[UUID] = None
    # When given, replaces the linked services
    service_ids: Optional[List[UUID]] = Field(None, min_length=1)
    total_price: Optional[Decimal] = Field(None, ge=0)
    slot_interval_minutes: Optional[int] = Field(None, ge=5, le=240)

    @field_validator("appointment_time")
    @classmethod
    def normalize_time(cls, value: str) -> str:
        return _normalize_time(value)

    @field_validator("service_ids")
    @classmethod
    def unique_services(cls, value: Optional[List[UUID]]) -> Optional[List[UUID]]:
        return _unique_ids(value)

    class Config:
        populate_by_name = True


# ============== Response Schemas ==============

class AppointmentResponse(BaseModel):
    """Stored appointment"""
    id: UUID
    company_id: UUID
    collaborator_id: UUID
    client_id: UUID
    client_nickname: Optional[str] = None
    appointment_date: date
    appointment_time: str
    total_duration_minutes: int
    total_price: Decimal
    observations: Optional[str] = None
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime

    @field_validator("appointment_time", mode="before")
    @classmethod
    def format_time(cls, value):
        if hasattr(value, "strftime"):
            return value.strftime("%H:%M")
        return value

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    """Result of a successful booking or reschedule"""
    appointment_id: UUID
    message: str
    appointment: AppointmentResponse


class SlotConflictResponse(BaseModel):
    """409 body: the slot was taken; offer what is free now"""
    detail: str
    requested_slot: str
    available_slots_count: int
    available_slots: List[str]
