"""
Schedule Exception Model - date-specific override for a collaborator
"""
import uuid
from datetime import date, time
from typing import Optional

from sqlalchemy import Boolean, Date, Index, String, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from slotwise.db.database import Base


class ScheduleException(Base):
    """
    A day off (is_day_off) or a blocked window on one date.
    A window never adds working time; it only makes part of the day busy.
    """

    __tablename__ = "schedule_exceptions"
    __table_args__ = (
        Index("ix_schedule_exceptions_collaborator_date", "collaborator_id", "exception_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    collaborator_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_day_off: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        window = "day off" if self.is_day_off else f"{self.start_time}-{self.end_time}"
        return f"<ScheduleException {self.collaborator_id} {self.exception_date} {window}>"
