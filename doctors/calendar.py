"""
Shared helpers for placing intervals on a doctor's calendar.

Anything that adds an interval (slot generation, manual slots, direct
bookings) runs inside `transaction.atomic()` and takes the doctor row lock
first, so two writers can never both see the same window as free.
"""
from datetime import datetime, date, time, timedelta

from django.utils import timezone

from careslot.exceptions import NotFound
from .models import DoctorProfile, TimeSlot


def lock_doctor(doctor_id) -> DoctorProfile:
    """SELECT ... FOR UPDATE on the doctor row. Must be called inside an atomic block."""
    try:
        return DoctorProfile.objects.select_for_update().get(pk=doctor_id)
    except DoctorProfile.DoesNotExist:
        raise NotFound('Doctor not found.')


def aware(day: date, at: time) -> datetime:
    """Wall-clock `day` + `at` in the active time zone."""
    return timezone.make_aware(datetime.combine(day, at))


def daterange(start_date: date, end_date: date):
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def overlapping_slot(doctor_id, start, end, exclude_slot_id=None):
    """First non-cancelled slot of the doctor intersecting [start, end), or None."""
    qs = TimeSlot.objects.filter(doctor_id=doctor_id).active().overlapping(start, end)
    if exclude_slot_id is not None:
        qs = qs.exclude(pk=exclude_slot_id)
    return qs.first()


def overlapping_appointment(doctor_id, start, end, exclude_slot_id=None):
    """First live appointment of the doctor intersecting [start, end), or None."""
    from appointments.models import Appointment

    qs = Appointment.objects.filter(doctor_id=doctor_id).live().overlapping(start, end)
    if exclude_slot_id is not None:
        qs = qs.exclude(time_slot_id=exclude_slot_id)
    return qs.first()
