"""
API Dependencies
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from slotwise.core.logging_config import new_correlation_id
from slotwise.db.database import get_db
from slotwise.services.availability import AvailabilityEngine
from slotwise.services.booking import BookingArbiter
from slotwise.services.schedule_source import SqlAlchemyScheduleSource


async def get_correlation_id(
    x_request_id: Optional[str] = Header(None, max_length=64),
) -> str:
    """Correlation id for log lines of this request: the caller's X-Request-ID or a new one"""
    return x_request_id or new_correlation_id()


async def get_availability_engine(
    db: AsyncSession = Depends(get_db),
) -> AvailabilityEngine:
    return AvailabilityEngine(SqlAlchemyScheduleSource(db))


async def get_booking_arbiter(
    db: AsyncSession = Depends(get_db),
    engine: AvailabilityEngine = Depends(get_availability_engine),
) -> BookingArbiter:
    """Arbiter whose recheck reads through the same session it writes with"""
    return BookingArbiter(db, engine)
