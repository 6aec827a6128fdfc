"""
Read-only data feeds for the availability engine.

A source hands the engine a ``DaySnapshot``: the working schedules, exceptions
and live appointments of one collaborator on one date. The SQLAlchemy source
loads all three in a single round trip; the in-memory source serves fixtures
and cached copies.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Protocol
from uuid import UUID

from sqlalchemy import Integer, String, Time, cast, false, literal_column, null, select, union_all
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from slotwise.core.exceptions import UpstreamDataFetchFailure
from slotwise.models.appointment import Appointment, AppointmentStatus
from slotwise.models.schedule_exception import ScheduleException
from slotwise.models.working_schedule import WorkingSchedule

logger = logging.getLogger(__name__)

SCHEDULE_ROW = "schedule"
EXCEPTION_ROW = "exception"
APPOINTMENT_ROW = "appointment"


def sunday_based_weekday(target_date: date) -> int:
    """Day of week as stored in working_schedules: 0 = Sunday ... 6 = Saturday."""
    return target_date.isoweekday() % 7


@dataclass
class ScheduleRecord:
    """Working block; times are raw values from the store."""
    start_time: Any
    end_time: Any
    id: Optional[UUID] = None


@dataclass
class ExceptionRecord:
    is_day_off: bool
    start_time: Any = None
    end_time: Any = None
    id: Optional[UUID] = None


@dataclass
class AppointmentRecord:
    """Busy projection of a non-cancelled appointment."""
    start_time: Any
    duration_minutes: Any
    id: Optional[UUID] = None


@dataclass
class DaySnapshot:
    target_date: date
    working_schedules: List[ScheduleRecord] = field(default_factory=list)
    exceptions: List[ExceptionRecord] = field(default_factory=list)
    appointments: List[AppointmentRecord] = field(default_factory=list)


class ScheduleSource(Protocol):
    async def load_day(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        target_date: date,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> DaySnapshot:
        ...


def build_day_query(
    company_id: UUID,
    collaborator_id: UUID,
    target_date: date,
    exclude_appointment_id: Optional[UUID] = None,
):
    """
    One UNION ALL statement over the three tables.

    Every branch yields (kind, record_id, start_time, end_time, is_day_off,
    duration_minutes); column types come from the first branch.
    """
    schedules = select(
        literal_column(f"'{SCHEDULE_ROW}'", String).label("kind"),
        WorkingSchedule.id.label("record_id"),
        WorkingSchedule.start_time.label("start_time"),
        WorkingSchedule.end_time.label("end_time"),
        false().label("is_day_off"),
        cast(null(), Integer).label("duration_minutes"),
    ).where(
        WorkingSchedule.company_id == company_id,
        WorkingSchedule.collaborator_id == collaborator_id,
        WorkingSchedule.day_of_week == sunday_based_weekday(target_date),
    )

    exceptions = select(
        literal_column(f"'{EXCEPTION_ROW}'", String),
        ScheduleException.id,
        ScheduleException.start_time,
        ScheduleException.end_time,
        ScheduleException.is_day_off,
        cast(null(), Integer),
    ).where(
        ScheduleException.company_id == company_id,
        ScheduleException.collaborator_id == collaborator_id,
        ScheduleException.exception_date == target_date,
    )

    appointments = select(
        literal_column(f"'{APPOINTMENT_ROW}'", String),
        Appointment.id,
        Appointment.appointment_time,
        cast(null(), Time),
        false(),
        Appointment.total_duration_minutes,
    ).where(
        Appointment.company_id == company_id,
        Appointment.collaborator_id == collaborator_id,
        Appointment.appointment_date == target_date,
        Appointment.status != AppointmentStatus.CANCELLED,
    )
    if exclude_appointment_id is not None:
        appointments = appointments.where(Appointment.id != exclude_appointment_id)

    return union_all(schedules, exceptions, appointments)


class SqlAlchemyScheduleSource:
    """Loads a day snapshot from the database in one round trip."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_day(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        target_date: date,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> DaySnapshot:
        query = build_day_query(company_id, collaborator_id, target_date, exclude_appointment_id)
        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to load schedule data for collaborator %s on %s: %s",
                collaborator_id, target_date, e,
            )
            raise UpstreamDataFetchFailure(
                f"Could not load availability data for {target_date}"
            ) from e

        snapshot = DaySnapshot(target_date=target_date)
        for row in rows:
            if row.kind == SCHEDULE_ROW:
                snapshot.working_schedules.append(
                    ScheduleRecord(start_time=row.start_time, end_time=row.end_time, id=row.record_id)
                )
            elif row.kind == EXCEPTION_ROW:
                snapshot.exceptions.append(
                    ExceptionRecord(
                        is_day_off=bool(row.is_day_off),
                        start_time=row.start_time,
                        end_time=row.end_time,
                        id=row.record_id,
                    )
                )
            else:
                snapshot.appointments.append(
                    AppointmentRecord(
                        start_time=row.start_time,
                        duration_minutes=row.duration_minutes,
                        id=row.record_id,
                    )
                )
        return snapshot


class InMemoryScheduleSource:
    """
    Dict-backed source with the same filtering rules as the database source.
    Used for fixtures and for serving a cached copy of the schedule tables.
    """

    def __init__(self):
        self._schedules: List[dict] = []
        self._exceptions: List[dict] = []
        self._appointments: List[dict] = []

    def add_working_schedule(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        day_of_week: int,
        start_time: Any,
        end_time: Any,
    ) -> ScheduleRecord:
        record = ScheduleRecord(start_time=start_time, end_time=end_time, id=uuid.uuid4())
        self._schedules.append({
            "company_id": company_id,
            "collaborator_id": collaborator_id,
            "day_of_week": day_of_week,
            "record": record,
        })
        return record

    def add_exception(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        exception_date: date,
        is_day_off: bool = False,
        start_time: Any = None,
        end_time: Any = None,
    ) -> ExceptionRecord:
        record = ExceptionRecord(
            is_day_off=is_day_off, start_time=start_time, end_time=end_time, id=uuid.uuid4()
        )
        self._exceptions.append({
            "company_id": company_id,
            "collaborator_id": collaborator_id,
            "exception_date": exception_date,
            "record": record,
        })
        return record

    def add_appointment(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        appointment_date: date,
        start_time: Any,
        duration_minutes: Any,
        status: AppointmentStatus = AppointmentStatus.PENDING,
        appointment_id: Optional[UUID] = None,
    ) -> AppointmentRecord:
        record = AppointmentRecord(
            start_time=start_time,
            duration_minutes=duration_minutes,
            id=appointment_id or uuid.uuid4(),
        )
        self._appointments.append({
            "company_id": company_id,
            "collaborator_id": collaborator_id,
            "appointment_date": appointment_date,
            "status": status,
            "record": record,
        })
        return record

    def get_working_schedules(
        self, company_id: UUID, collaborator_id: UUID, day_of_week: int
    ) -> List[ScheduleRecord]:
        return [
            row["record"] for row in self._schedules
            if row["company_id"] == company_id
            and row["collaborator_id"] == collaborator_id
            and row["day_of_week"] == day_of_week
        ]

    def get_exceptions(
        self, company_id: UUID, collaborator_id: UUID, exception_date: date
    ) -> List[ExceptionRecord]:
        return [
            row["record"] for row in self._exceptions
            if row["company_id"] == company_id
            and row["collaborator_id"] == collaborator_id
            and row["exception_date"] == exception_date
        ]

    def get_busy_appointments(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        appointment_date: date,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> List[AppointmentRecord]:
        return [
            row["record"] for row in self._appointments
            if row["company_id"] == company_id
            and row["collaborator_id"] == collaborator_id
            and row["appointment_date"] == appointment_date
            and row["status"] != AppointmentStatus.CANCELLED
            and (exclude_appointment_id is None or row["record"].id != exclude_appointment_id)
        ]

    async def load_day(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        target_date: date,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> DaySnapshot:
        return DaySnapshot(
            target_date=target_date,
            working_schedules=self.get_working_schedules(
                company_id, collaborator_id, sunday_based_weekday(target_date)
            ),
            exceptions=self.get_exceptions(company_id, collaborator_id, target_date),
            appointments=self.get_busy_appointments(
                company_id, collaborator_id, target_date, exclude_appointment_id
            ),
        )
