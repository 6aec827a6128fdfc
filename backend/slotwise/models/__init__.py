"""
Models module initialization
"""
from slotwise.models.working_schedule import WorkingSchedule
from slotwise.models.schedule_exception import ScheduleException
from slotwise.models.appointment import Appointment, AppointmentService, AppointmentStatus
