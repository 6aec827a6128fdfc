"""
Working Schedule Model - recurring weekly availability of a collaborator
"""
import uuid
from datetime import time

from sqlalchemy import Index, Integer, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from slotwise.db.database import Base


class WorkingSchedule(Base):
    """One working block of a collaborator on a day of the week"""

    __tablename__ = "working_schedules"
    __table_args__ = (
        Index("ix_working_schedules_collaborator_day", "collaborator_id", "day_of_week"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    collaborator_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    # 0 = Sunday, 6 = Saturday
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)

    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    def __repr__(self) -> str:
        return f"<WorkingSchedule {self.collaborator_id} Day {self.day_of_week} {self.start_time}-{self.end_time}>"
