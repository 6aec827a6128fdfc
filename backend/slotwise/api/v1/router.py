"""
API v1 Router - combines all route modules
"""
from fastapi import APIRouter

from slotwise.api.v1.endpoints import availability, bookings

api_router = APIRouter()

api_router.include_router(availability.router, prefix="/availability", tags=["Availability"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])
