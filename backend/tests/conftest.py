"""
Shared fixtures: a throwaway SQLite database per test, a fixed business clock
and an HTTP client bound to the application with its session overridden.
"""
import os
import uuid
from datetime import date, datetime, time

# Keep the application engine off Postgres while the test session imports it
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./slotwise-test.db")

import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from slotwise.api import deps
from slotwise.db.database import Base, get_db
from slotwise.main import app
from slotwise.models import WorkingSchedule, ScheduleException
from slotwise.services.availability import AvailabilityEngine
from slotwise.services.schedule_source import SqlAlchemyScheduleSource, sunday_based_weekday

# A Monday well after the fixed clock below
MONDAY = date(2030, 1, 7)
NOW = datetime(2030, 1, 1, 8, 0)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def company_id():
    return uuid.uuid4()


@pytest.fixture
def collaborator_id():
    return uuid.uuid4()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'slotwise.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


def make_engine(session: AsyncSession) -> AvailabilityEngine:
    return AvailabilityEngine(SqlAlchemyScheduleSource(session), clock=fixed_clock)


async def seed_working_day(
    session_factory,
    company_id,
    collaborator_id,
    day: date = MONDAY,
    start: time = time(9, 0),
    end: time = time(12, 0),
):
    async with session_factory() as session:
        session.add(WorkingSchedule(
            company_id=company_id,
            collaborator_id=collaborator_id,
            day_of_week=sunday_based_weekday(day),
            start_time=start,
            end_time=end,
        ))
        await session.commit()


async def seed_exception(session_factory, company_id, collaborator_id, **fields):
    async with session_factory() as session:
        session.add(ScheduleException(
            company_id=company_id,
            collaborator_id=collaborator_id,
            **fields,
        ))
        await session.commit()


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_engine(db: AsyncSession = Depends(get_db)):
        return make_engine(db)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_availability_engine] = override_engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
