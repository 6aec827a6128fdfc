import uuid
from datetime import time, timedelta

import pytest
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from slotwise.api import deps
from slotwise.core.exceptions import UpstreamDataFetchFailure
from slotwise.db.database import get_db
from slotwise.main import app
from slotwise.models import Appointment, AppointmentService
from slotwise.services.availability import AvailabilityEngine
from slotwise.services.booking import BookingArbiter

from tests.conftest import MONDAY, fixed_clock, make_engine, seed_exception, seed_working_day


@pytest.fixture
async def working_day(session_factory, company_id, collaborator_id):
    await seed_working_day(session_factory, company_id, collaborator_id)


def booking_body(company_id, collaborator_id, at="10:00", minutes=30, **fields):
    body = {
        "company_id": str(company_id),
        "collaborator_id": str(collaborator_id),
        "client_id": str(uuid.uuid4()),
        "service_ids": [str(uuid.uuid4())],
        "date": MONDAY.isoformat(),
        "time": at,
        "total_duration_minutes": minutes,
        "total_price": "45.00",
    }
    body.update(fields)
    return body


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_list_slots(client, working_day, company_id, collaborator_id):
    response = await client.get(
        f"/api/v1/availability/{collaborator_id}",
        params={"company_id": str(company_id), "date": MONDAY.isoformat(), "duration_minutes": 60},
        headers={"X-Request-ID": "test-req"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2030-01-07"
    assert data["collaborator_id"] == str(collaborator_id)
    assert data["slot_interval_minutes"] == 30
    assert data["slots"] == ["09:00", "09:30", "10:00", "10:30", "11:00"]
    assert data["ranges"][0] == "09:00 às 10:00"


async def test_list_slots_on_day_off(client, working_day, session_factory, company_id, collaborator_id):
    await seed_exception(session_factory, company_id, collaborator_id, exception_date=MONDAY, is_day_off=True)

    response = await client.get(
        f"/api/v1/availability/{collaborator_id}",
        params={"company_id": str(company_id), "date": MONDAY.isoformat(), "duration_minutes": 30},
    )

    assert response.status_code == 200
    assert response.json()["slots"] == []


async def test_list_slots_requires_positive_duration(client, collaborator_id, company_id):
    response = await client.get(
        f"/api/v1/availability/{collaborator_id}",
        params={"company_id": str(company_id), "date": MONDAY.isoformat(), "duration_minutes": 0},
    )
    assert response.status_code == 422


async def test_range(client, session_factory, company_id, collaborator_id):
    await seed_working_day(session_factory, company_id, collaborator_id, start=time(9, 0), end=time(10, 0))

    response = await client.get(
        f"/api/v1/availability/{collaborator_id}/range",
        params={
            "company_id": str(company_id),
            "start_date": MONDAY.isoformat(),
            "end_date": (MONDAY + timedelta(days=6)).isoformat(),
            "duration_minutes": 30,
        },
    )

    assert response.status_code == 200
    assert response.json()["days"] == {"2030-01-07": ["09:00", "09:30"]}


async def test_range_too_long(client, company_id, collaborator_id):
    response = await client.get(
        f"/api/v1/availability/{collaborator_id}/range",
        params={
            "company_id": str(company_id),
            "start_date": MONDAY.isoformat(),
            "end_date": (MONDAY + timedelta(days=90)).isoformat(),
            "duration_minutes": 30,
        },
    )
    assert response.status_code == 400


async def test_book_then_conflict(client, working_day, company_id, collaborator_id):
    created = await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id))

    assert created.status_code == 201
    data = created.json()
    assert data["appointment_id"] == data["appointment"]["id"]
    assert data["appointment"]["status"] == "pendente"
    assert data["appointment"]["appointment_time"] == "10:00"

    conflict = await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id))

    assert conflict.status_code == 409
    body = conflict.json()
    assert body["requested_slot"] == "10:00"
    assert body["available_slots_count"] == 4
    assert body["available_slots"] == ["09:00", "09:30", "11:00", "11:30"]


async def test_booked_slot_disappears_from_listing(client, working_day, company_id, collaborator_id):
    await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id, at="09:00 às 10:00", minutes=60))

    response = await client.get(
        f"/api/v1/availability/{collaborator_id}",
        params={"company_id": str(company_id), "date": MONDAY.isoformat(), "duration_minutes": 30},
    )

    assert response.json()["slots"] == ["10:30", "11:00", "11:30"]


async def test_booking_rejects_bad_time(client, working_day, company_id, collaborator_id):
    response = await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id, at="soon"))
    assert response.status_code == 422


async def test_booking_requires_services(client, working_day, company_id, collaborator_id):
    response = await client.post(
        "/api/v1/bookings", json=booking_body(company_id, collaborator_id, service_ids=[])
    )
    assert response.status_code == 422


async def test_reschedule(client, working_day, company_id, collaborator_id):
    created = (await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id))).json()

    response = await client.put(
        f"/api/v1/bookings/{created['appointment_id']}/schedule",
        json={
            "company_id": str(company_id),
            "date": MONDAY.isoformat(),
            "time": "10:30",
            "total_duration_minutes": 30,
        },
    )

    assert response.status_code == 200
    assert response.json()["appointment"]["appointment_time"] == "10:30"


async def test_reschedule_unknown(client, company_id):
    response = await client.put(
        f"/api/v1/bookings/{uuid.uuid4()}/schedule",
        json={
            "company_id": str(company_id),
            "date": MONDAY.isoformat(),
            "time": "10:30",
            "total_duration_minutes": 30,
        },
    )
    assert response.status_code == 404


# ---- Error paths ----

class UnreachableSource:
    async def load_day(self, company_id, collaborator_id, target_date, exclude_appointment_id=None):
        raise UpstreamDataFetchFailure(f"Could not load availability data for {target_date}")


class FirstAnswerStale:
    """Engine whose first answer predates the latest booking."""

    def __init__(self, engine, stale_slots):
        self.engine = engine
        self.stale_slots = stale_slots
        self.answered = False

    async def compute_available_slots(self, *args, **kwargs):
        if not self.answered:
            self.answered = True
            return list(self.stale_slots)
        return await self.engine.compute_available_slots(*args, **kwargs)


@pytest.fixture
def store_down(client):
    async def unreachable_engine():
        return AvailabilityEngine(UnreachableSource(), clock=fixed_clock)

    app.dependency_overrides[deps.get_availability_engine] = unreachable_engine


@pytest.fixture
def broken_service_links(monkeypatch):
    async def broken_link(self, appointment_id, service_ids):
        raise SQLAlchemyError("appointment_services unavailable")

    monkeypatch.setattr(BookingArbiter, "_link_services", broken_link)


async def test_listing_when_store_is_down(client, store_down, company_id, collaborator_id):
    response = await client.get(
        f"/api/v1/availability/{collaborator_id}",
        params={"company_id": str(company_id), "date": MONDAY.isoformat(), "duration_minutes": 30},
    )
    assert response.status_code == 503
    assert response.json()["detail"] == "Could not load availability"


async def test_range_when_store_is_down(client, store_down, company_id, collaborator_id):
    response = await client.get(
        f"/api/v1/availability/{collaborator_id}/range",
        params={
            "company_id": str(company_id),
            "start_date": MONDAY.isoformat(),
            "end_date": (MONDAY + timedelta(days=2)).isoformat(),
            "duration_minutes": 30,
        },
    )
    assert response.status_code == 503
    assert response.json()["detail"] == "Could not load availability"


async def test_booking_when_store_is_down(client, store_down, session_factory, company_id, collaborator_id):
    response = await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id))

    assert response.status_code == 503
    assert response.json()["detail"] == "Could not load availability"
    async with session_factory() as session:
        assert (await session.scalars(select(Appointment))).all() == []


async def test_booking_link_failure_is_500_and_saves_nothing(
    client, working_day, broken_service_links, session_factory, company_id, collaborator_id
):
    response = await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id))

    assert response.status_code == 500
    async with session_factory() as session:
        assert (await session.scalars(select(Appointment))).all() == []


async def test_reschedule_link_failure_is_500_and_changes_nothing(
    client, working_day, session_factory, company_id, collaborator_id, monkeypatch
):
    body = booking_body(company_id, collaborator_id)
    created = (await client.post("/api/v1/bookings", json=body)).json()

    async def broken_link(self, appointment_id, service_ids):
        raise SQLAlchemyError("appointment_services unavailable")

    monkeypatch.setattr(BookingArbiter, "_link_services", broken_link)
    response = await client.put(
        f"/api/v1/bookings/{created['appointment_id']}/schedule",
        json={
            "company_id": str(company_id),
            "date": MONDAY.isoformat(),
            "time": "11:00",
            "total_duration_minutes": 30,
            "service_ids": [str(uuid.uuid4())],
        },
    )

    assert response.status_code == 500
    appointment_id = uuid.UUID(created["appointment_id"])
    async with session_factory() as session:
        stored = await session.get(Appointment, appointment_id)
        links = (await session.scalars(
            select(AppointmentService.service_id).where(AppointmentService.appointment_id == appointment_id)
        )).all()
    assert stored.appointment_time == time(10, 0)
    assert [str(link) for link in links] == body["service_ids"]


async def test_unique_index_conflict_matches_recheck_conflict(client, working_day, company_id, collaborator_id):
    assert (await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id))).status_code == 201

    recheck = await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id))

    async def stale_engine(db: AsyncSession = Depends(get_db)):
        return FirstAnswerStale(make_engine(db), ["10:00"])

    app.dependency_overrides[deps.get_availability_engine] = stale_engine
    index = await client.post("/api/v1/bookings", json=booking_body(company_id, collaborator_id))

    assert recheck.status_code == index.status_code == 409
    assert index.json() == recheck.json()
