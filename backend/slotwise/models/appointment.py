"""
Appointment Model - booked time of a collaborator for a client
"""
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Time, Uuid,
    Enum as SQLEnum, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from slotwise.db.database import Base
from slotwise.core.timezone import utc_now


class AppointmentStatus(str, Enum):
    """Status of an appointment"""
    PENDING = "pendente"
    CONFIRMED = "confirmado"
    COMPLETED = "concluido"
    CANCELLED = "cancelado"


# Last-resort guard against double booking: one live appointment per
# collaborator start time. Cancelled rows do not hold the slot.
ACTIVE_SLOT_INDEX = "uq_appointments_active_slot"


class Appointment(Base):
    """
    Appointment of a client with a collaborator.
    Busy time is [appointment_time, appointment_time + total_duration_minutes).
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            ACTIVE_SLOT_INDEX,
            "collaborator_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text("status <> 'cancelado'"),
            sqlite_where=text("status <> 'cancelado'"),
        ),
        Index("ix_appointments_collaborator_date", "collaborator_id", "appointment_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    collaborator_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    client_nickname: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Scheduling (wall clock in the business timezone)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[time] = mapped_column(Time, nullable=False)
    total_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    services: Mapped[List["AppointmentService"]] = relationship(
        "AppointmentService",
        back_populates="appointment",
        cascade="all, delete-orphan",
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<Appointment {self.collaborator_id} {self.appointment_date} {self.appointment_time} ({self.status.value})>"


class AppointmentService(Base):
    """Service performed during an appointment"""

    __tablename__ = "appointment_services"

    appointment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        primary_key=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)

    appointment: Mapped["Appointment"] = relationship(
        "Appointment",
        back_populates="services",
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<AppointmentService {self.appointment_id} {self.service_id}>"
