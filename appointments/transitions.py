"""
Appointment state machine.

    PENDING   --confirm-->   CONFIRMED
    PENDING   --reject-->    CANCELLED   (slot released)
    PENDING   --cancel-->    CANCELLED   (slot released)
    CONFIRMED --cancel-->    CANCELLED   (slot released)
    CONFIRMED --complete-->  COMPLETED   (history written)
    COMPLETED --follow-up--> COMPLETED

Every edge is one conditional UPDATE guarded by the allowed source statuses,
so a lost race surfaces as InvalidTransition and changes nothing. Ownership
is checked by the caller before any of these run.
"""
import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from careslot.exceptions import InvalidTransition, NotFound, store_call
from doctors.models import TimeSlot
from .models import Appointment, Notification, PatientHistory, Prescription
from .notifications import notify_on_commit

logger = logging.getLogger(__name__)

OPEN = (Appointment.PENDING, Appointment.CONFIRMED)
NOT_CANCELLED = (Appointment.PENDING, Appointment.CONFIRMED, Appointment.COMPLETED)

PATIENT = 'patient'
DOCTOR = 'doctor'


def _get(appointment_id) -> Appointment:
    try:
        return Appointment.objects.select_related('patient', 'doctor__user').get(pk=appointment_id)
    except Appointment.DoesNotExist:
        raise NotFound('Appointment not found.')


def _apply(appointment_id, allowed, action, **changes) -> Appointment:
    """Conditionally update the appointment if its status is in `allowed`, then reload it."""
    updated = Appointment.objects.filter(pk=appointment_id, status__in=allowed).update(
        updated_at=timezone.now(), **changes)
    if not updated:
        current = Appointment.objects.filter(pk=appointment_id).values_list('status', flat=True).first()
        if current is None:
            raise NotFound('Appointment not found.')
        raise InvalidTransition(f'Cannot {action} an appointment that is {current}.')
    return _get(appointment_id)


def _release_slot(appointment):
    if appointment.time_slot_id:
        TimeSlot.objects.filter(pk=appointment.time_slot_id, status=TimeSlot.BOOKED).update(
            status=TimeSlot.AVAILABLE, updated_at=timezone.now())


def _when(appointment):
    return f"{appointment.appointment_date:%d %b %Y} at {appointment.appointment_time:%H:%M}"


def _check_follow_up_date(appointment, follow_up_date):
    if follow_up_date is not None and follow_up_date < appointment.appointment_date:
        raise ValidationError({'follow_up_date': 'Follow-up date cannot be before the appointment date.'})


@store_call
def confirm(appointment_id) -> Appointment:
    with transaction.atomic():
        appointment = _apply(appointment_id, [Appointment.PENDING], 'confirm', status=Appointment.CONFIRMED)
        notify_on_commit(
            appointment.patient_id,
            Notification.APPOINTMENT_CONFIRMED,
            'Appointment Confirmed',
            f'Dr. {appointment.doctor.user.name} confirmed your appointment on {_when(appointment)}.',
            appointment_id=appointment.id,
            sms=True,
        )
    logger.info('Appointment %s confirmed', appointment_id)
    return appointment


@store_call
def reject(appointment_id, reason=None) -> Appointment:
    with transaction.atomic():
        appointment = _apply(
            appointment_id, [Appointment.PENDING], 'reject',
            status=Appointment.CANCELLED,
            cancelled_by=DOCTOR,
            cancellation_reason=reason or None,
        )
        _release_slot(appointment)
        message = f'Dr. {appointment.doctor.user.name} declined your appointment request for {_when(appointment)}.'
        if reason:
            message += f' Reason: {reason}'
        notify_on_commit(
            appointment.patient_id,
            Notification.APPOINTMENT_REJECTED,
            'Appointment Rejected',
            message,
            appointment_id=appointment.id,
            sms=True,
        )
    logger.info('Appointment %s rejected', appointment_id)
    return appointment


@store_call
def cancel(appointment_id, cancelled_by, reason=None) -> Appointment:
    """Cancel a PENDING or CONFIRMED appointment; `cancelled_by` is 'patient' or 'doctor'."""
    if cancelled_by not in (PATIENT, DOCTOR):
        raise ValidationError({'cancelled_by': "Must be 'patient' or 'doctor'."})

    with transaction.atomic():
        appointment = _apply(
            appointment_id, OPEN, 'cancel',
            status=Appointment.CANCELLED,
            cancelled_by=cancelled_by,
            cancellation_reason=reason or None,
        )
        _release_slot(appointment)

        if cancelled_by == PATIENT:
            recipient = appointment.doctor.user_id
            message = f'{appointment.patient.name or "The patient"} cancelled the appointment on {_when(appointment)}.'
        else:
            recipient = appointment.patient_id
            message = f'Dr. {appointment.doctor.user.name} cancelled your appointment on {_when(appointment)}.'
        if reason:
            message += f' Reason: {reason}'
        notify_on_commit(
            recipient,
            Notification.APPOINTMENT_CANCELLED,
            'Appointment Cancelled',
            message,
            appointment_id=appointment.id,
            sms=cancelled_by == DOCTOR,
        )
    logger.info('Appointment %s cancelled by %s', appointment_id, cancelled_by)
    return appointment


@store_call
def complete(appointment_id, notes=None, prescription=None, follow_up_date=None) -> Appointment:
    """
    CONFIRMED -> COMPLETED. Writes the PatientHistory row (and the optional
    prescription) in the same transaction, so a second call fails without
    leaving a duplicate.
    """
    _check_follow_up_date(_get(appointment_id), follow_up_date)

    changes = {'status': Appointment.COMPLETED}
    if notes is not None:
        changes['notes'] = notes
    if follow_up_date is not None:
        changes.update(follow_up_date=follow_up_date, follow_up_sent=False, follow_up_sent_at=None)

    with transaction.atomic():
        appointment = _apply(appointment_id, [Appointment.CONFIRMED], 'complete', **changes)
        issued = None
        if prescription:
            issued = Prescription.objects.create(
                patient_id=appointment.patient_id,
                doctor_id=appointment.doctor_id,
                content=prescription,
            )
        PatientHistory.objects.create(
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            appointment=appointment,
            prescription=issued,
            notes=appointment.notes,
        )
        notify_on_commit(
            appointment.patient_id,
            Notification.APPOINTMENT_COMPLETED,
            'Appointment Completed',
            f'Your appointment with Dr. {appointment.doctor.user.name} on {_when(appointment)} is complete.',
            appointment_id=appointment.id,
        )
    logger.info('Appointment %s completed (prescription=%s)', appointment_id, bool(issued))
    return appointment


@store_call
def set_follow_up(appointment_id, follow_up_date) -> Appointment:
    """Set, move or clear (None) the follow-up date. Any change re-arms the reminder."""
    _check_follow_up_date(_get(appointment_id), follow_up_date)
    with transaction.atomic():
        appointment = _apply(
            appointment_id, [Appointment.COMPLETED], 'schedule a follow-up for',
            follow_up_date=follow_up_date,
            follow_up_sent=False,
            follow_up_sent_at=None,
        )
    logger.info('Appointment %s follow-up set to %s', appointment_id, follow_up_date)
    return appointment


@store_call
def update_notes(appointment_id, notes) -> Appointment:
    return _apply(appointment_id, NOT_CANCELLED, 'add notes to', notes=notes or None)
