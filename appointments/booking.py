"""
Booking coordinator: turns a published slot, or a direct window on the
doctor's calendar, into a PENDING appointment.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from careslot.exceptions import Conflict, NotFound, store_call
from doctors.blocked_dates import blocking_reason
from doctors.calendar import aware, lock_doctor, overlapping_appointment, overlapping_slot
from doctors.models import TimeSlot
from users.models import User
from .models import Appointment, Notification
from .notifications import notify_on_commit

logger = logging.getLogger(__name__)

SLOT_TAKEN = 'This time slot is no longer available.'


def _load_slot(time_slot_id) -> TimeSlot:
    try:
        return TimeSlot.objects.select_related('doctor__user').get(pk=time_slot_id)
    except TimeSlot.DoesNotExist:
        raise NotFound('Time slot not found.')


def _load_patient(patient_id) -> User:
    patient = User.objects.filter(pk=patient_id).first()
    if patient is None:
        raise NotFound('Patient not found.')
    return patient


def _ensure_patient_free(patient_id, start, end):
    if Appointment.objects.filter(patient_id=patient_id).live().overlapping(start, end).exists():
        raise Conflict('You already have an appointment at this time.')


def _announce(appointment, doctor, patient):
    when = f"{appointment.appointment_date:%d %b %Y} at {appointment.appointment_time:%H:%M}"
    notify_on_commit(
        doctor.user_id,
        Notification.NEW_APPOINTMENT,
        'New Appointment Request',
        f'{patient.name or "A patient"} requested an appointment on {when}.',
        appointment_id=appointment.id,
    )
    notify_on_commit(
        patient.id,
        Notification.APPOINTMENT_PENDING,
        'Appointment Requested',
        f'Your appointment with Dr. {doctor.user.name} on {when} is awaiting confirmation.',
        appointment_id=appointment.id,
    )


def _window_fields(start, end):
    local_start = timezone.localtime(start)
    return {
        'start_at': start,
        'end_at': end,
        'appointment_date': local_start.date(),
        'appointment_time': local_start.time().replace(microsecond=0),
        'duration_minutes': int((end - start).total_seconds() // 60),
    }


@store_call
def reserve(time_slot_id, patient_id, appointment_type=Appointment.OFFLINE, reason=None) -> Appointment:
    """
    Book a published slot for a patient.

    The AVAILABLE -> BOOKED flip is a single conditional UPDATE; the earlier
    status read only gives a friendlier error. The UPDATE is also guarded on
    the window that was read and checked, so a slot moved in between is not
    booked at its old time. If it touches no row the booking fails with
    Conflict.
    """
    with transaction.atomic():
        slot = _load_slot(time_slot_id)
        if slot.status != TimeSlot.AVAILABLE:
            raise Conflict(SLOT_TAKEN)

        blocked = blocking_reason(slot.doctor_id, slot.start_time, slot.end_time)
        if blocked:
            raise Conflict(blocked)

        patient = _load_patient(patient_id)
        _ensure_patient_free(patient.id, slot.start_time, slot.end_time)

        claimed = TimeSlot.objects.filter(
            pk=slot.pk,
            status=TimeSlot.AVAILABLE,
            start_time=slot.start_time,
            end_time=slot.end_time,
        ).update(status=TimeSlot.BOOKED, updated_at=timezone.now())
        if not claimed:
            raise Conflict(SLOT_TAKEN)
        # the row is ours now; take the fee as it stands
        slot.refresh_from_db(fields=['consultation_fee', 'status'])

        try:
            with transaction.atomic():
                appointment = Appointment.objects.create(
                    patient=patient,
                    doctor_id=slot.doctor_id,
                    time_slot=slot,
                    appointment_type=appointment_type,
                    reason=reason or None,
                    consultation_fee=slot.consultation_fee,
                    **_window_fields(slot.start_time, slot.end_time),
                )
        except IntegrityError:
            raise Conflict(SLOT_TAKEN)

        _announce(appointment, slot.doctor, patient)

    logger.info('Patient %s booked slot %s (appointment %s)', patient_id, time_slot_id, appointment.id)
    return appointment


@store_call
def reserve_direct(doctor_id, patient_id, day, at, duration_minutes=None,
                   appointment_type=Appointment.OFFLINE, fee=None, reason=None) -> Appointment:
    """
    Book an ad-hoc window [day+at, day+at+duration) with no published slot.
    The doctor row lock serialises this against other placements on the same
    calendar.
    """
    duration = duration_minutes or settings.SCHEDULING['DEFAULT_DIRECT_DURATION_MINUTES']
    limit = settings.SCHEDULING['MAX_SLOT_DURATION_MINUTES']
    if not 1 <= duration <= limit:
        raise ValidationError(f'Duration must be between 1 and {limit} minutes.')

    start = aware(day, at)
    end = start + timedelta(minutes=duration)

    with transaction.atomic():
        doctor = lock_doctor(doctor_id)
        patient = _load_patient(patient_id)

        blocked = blocking_reason(doctor.id, start, end)
        if blocked:
            raise Conflict(blocked)

        if Appointment.objects.filter(patient=patient, doctor=doctor, status=Appointment.PENDING).exists():
            raise Conflict(
                'You already have a pending appointment request with this doctor. '
                'Please wait for their response before making another request.'
            )
        _ensure_patient_free(patient.id, start, end)

        if overlapping_appointment(doctor.id, start, end) or overlapping_slot(doctor.id, start, end):
            raise Conflict('The doctor already has an appointment or time slot at this time.')

        appointment = Appointment.objects.create(
            patient=patient,
            doctor=doctor,
            appointment_type=appointment_type,
            reason=reason or None,
            consultation_fee=doctor.consultation_fee if fee is None else fee,
            **_window_fields(start, end),
        )
        _announce(appointment, doctor, patient)

    logger.info('Patient %s booked direct appointment %s with doctor %s', patient_id, appointment.id, doctor_id)
    return appointment
