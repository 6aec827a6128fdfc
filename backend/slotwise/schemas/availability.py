"""
Pydantic Schemas for slot availability
"""
from datetime import date
from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel, Field


class AvailabilityResponse(BaseModel):
    """Free slot starts of a collaborator on one date"""
    collaborator_id: UUID
    target_date: date = Field(..., alias="date")
    duration_minutes: int
    slot_interval_minutes: int
    slots: List[str]
    # Same slots rendered as "HH:MM às HH:MM"
    ranges: List[str]

    class Config:
        populate_by_name = True


class AvailabilityRangeResponse(BaseModel):
    """Free slot starts per day; days without slots are omitted"""
    collaborator_id: UUID
    start_date: date
    end_date: date
    duration_minutes: int
    slot_interval_minutes: int
    days: Dict[str, List[str]]
