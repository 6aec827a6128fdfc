"""
Booking Arbiter

Recheck-then-commit for new and moved appointments. The requested start is
validated against a fresh slot computation on the same session that writes
the appointment; the partial unique index on live appointments catches the
race that remains between the recheck and the insert.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from slotwise.core.config import settings
from slotwise.core.exceptions import (
    AppointmentNotFound,
    PartialBookingFailure,
    SlotUnavailable,
    UpstreamDataFetchFailure,
)
from slotwise.core.logging_config import bind_logger
from slotwise.models.appointment import Appointment, AppointmentService, AppointmentStatus
from slotwise.schemas.booking import BookingCreate, BookingReschedule
from slotwise.services.availability import AvailabilityEngine
from slotwise.services.intervals import parse_wall_time
from slotwise.services.schedule_source import SqlAlchemyScheduleSource

logger = logging.getLogger(__name__)


class BookingArbiter:
    """Writes appointments only into slots the engine still reports as free."""

    def __init__(self, db: AsyncSession, engine: Optional[AvailabilityEngine] = None):
        self.db = db
        self.engine = engine or AvailabilityEngine(SqlAlchemyScheduleSource(db))

    async def attempt_booking(
        self,
        request: BookingCreate,
        correlation_id: Optional[str] = None,
    ) -> Appointment:
        """
        Book ``request.appointment_time`` if it is still free.

        Raises:
            SlotUnavailable: the recheck or the unique index rejected the slot
            PartialBookingFailure: linking services failed; nothing was kept
            UpstreamDataFetchFailure: the recheck could not load the day
        """
        log = bind_logger(logger, correlation_id)
        correlation_id = log.extra["correlation_id"]
        interval = request.slot_interval_minutes or settings.default_slot_interval_minutes
        requested = request.appointment_time

        fresh_slots = await self.engine.compute_available_slots(
            request.company_id,
            request.collaborator_id,
            request.appointment_date,
            request.total_duration_minutes,
            interval,
            correlation_id=correlation_id,
        )
        if requested not in fresh_slots:
            log.info(
                "Slot %s on %s no longer free for collaborator %s",
                requested, request.appointment_date, request.collaborator_id,
            )
            raise SlotUnavailable(requested, fresh_slots)

        appointment = Appointment(
            company_id=request.company_id,
            collaborator_id=request.collaborator_id,
            client_id=request.client_id,
            client_nickname=request.client_nickname,
            appointment_date=request.appointment_date,
            appointment_time=parse_wall_time(requested),
            total_duration_minutes=request.total_duration_minutes,
            total_price=request.total_price,
            observations=request.observations,
            status=AppointmentStatus.PENDING,
        )
        self.db.add(appointment)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            log.warning(
                "Lost race for %s on %s (collaborator %s)",
                requested, request.appointment_date, request.collaborator_id,
            )
            available = await self._current_slots(
                request.company_id,
                request.collaborator_id,
                request,
                interval,
                correlation_id=correlation_id,
            )
            raise SlotUnavailable(requested, available) from e

        appointment_id = appointment.id
        try:
            await self._link_services(appointment_id, request.service_ids)
        except SQLAlchemyError as e:
            # Rolling back drops the appointment row flushed above
            await self.db.rollback()
            log.error("Linking services to appointment %s failed: %s", appointment_id, e)
            raise PartialBookingFailure(
                f"Could not link services to appointment {appointment_id}; booking rolled back"
            ) from e

        await self.db.commit()
        log.info(
            "Booked appointment %s at %s on %s for collaborator %s",
            appointment_id, requested, request.appointment_date, request.collaborator_id,
        )
        return appointment

    async def reschedule(
        self,
        appointment_id: UUID,
        request: BookingReschedule,
        correlation_id: Optional[str] = None,
    ) -> Appointment:
        """
        Move an appointment to a new date, time or collaborator.

        The appointment does not count against its own new slot. Service links
        are replaced only when ``request.service_ids`` is given.

        Raises:
            AppointmentNotFound: no such appointment for the company
            SlotUnavailable: the new slot is taken
            PartialBookingFailure: replacing service links failed; nothing changed
        """
        log = bind_logger(logger, correlation_id)
        correlation_id = log.extra["correlation_id"]
        interval = request.slot_interval_minutes or settings.default_slot_interval_minutes
        requested = request.appointment_time

        result = await self.db.execute(
            select(Appointment).where(
                Appointment.id == appointment_id,
                Appointment.company_id == request.company_id,
            )
        )
        appointment = result.scalar_one_or_none()
        if not appointment:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found")

        collaborator_id = request.collaborator_id or appointment.collaborator_id
        fresh_slots = await self.engine.compute_available_slots(
            request.company_id,
            collaborator_id,
            request.appointment_date,
            request.total_duration_minutes,
            interval,
            exclude_appointment_id=appointment_id,
            correlation_id=correlation_id,
        )
        if requested not in fresh_slots:
            log.info(
                "Cannot move appointment %s to %s on %s: slot taken",
                appointment_id, requested, request.appointment_date,
            )
            raise SlotUnavailable(requested, fresh_slots)

        appointment.collaborator_id = collaborator_id
        appointment.appointment_date = request.appointment_date
        appointment.appointment_time = parse_wall_time(requested)
        appointment.total_duration_minutes = request.total_duration_minutes
        if request.total_price is not None:
            appointment.total_price = request.total_price

        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            log.warning("Lost race moving appointment %s to %s", appointment_id, requested)
            available = await self._current_slots(
                request.company_id,
                collaborator_id,
                request,
                interval,
                exclude_appointment_id=appointment_id,
                correlation_id=correlation_id,
            )
            raise SlotUnavailable(requested, available) from e

        if request.service_ids is not None:
            try:
                await self.db.execute(
                    delete(AppointmentService).where(
                        AppointmentService.appointment_id == appointment_id
                    )
                )
                await self._link_services(appointment_id, request.service_ids)
            except SQLAlchemyError as e:
                await self.db.rollback()
                log.error("Replacing services of appointment %s failed: %s", appointment_id, e)
                raise PartialBookingFailure(
                    f"Could not replace services of appointment {appointment_id}; reschedule rolled back"
                ) from e

        await self.db.commit()
        log.info(
            "Moved appointment %s to %s on %s (collaborator %s)",
            appointment_id, requested, request.appointment_date, collaborator_id,
        )
        return appointment

    async def _link_services(self, appointment_id: UUID, service_ids: List[UUID]) -> None:
        self.db.add_all([
            AppointmentService(appointment_id=appointment_id, service_id=service_id)
            for service_id in service_ids
        ])
        await self.db.flush()

    async def _current_slots(
        self,
        company_id: UUID,
        collaborator_id: UUID,
        request,
        interval: int,
        exclude_appointment_id: Optional[UUID] = None,
        correlation_id: Optional[str] = None,
    ) -> List[str]:
        """Slots to offer after a lost race; an empty list if they cannot be loaded."""
        try:
            return await self.engine.compute_available_slots(
                company_id,
                collaborator_id,
                request.appointment_date,
                request.total_duration_minutes,
                interval,
                exclude_appointment_id=exclude_appointment_id,
                correlation_id=correlation_id,
            )
        except UpstreamDataFetchFailure as e:
            bind_logger(logger, correlation_id).warning("Could not reload slots after conflict: %s", e)
            return []
