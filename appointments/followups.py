"""
Follow-up and upcoming-appointment reminders.

Both reminder kinds claim the appointment with a conditional UPDATE and send
the e-mail inside the same transaction. A failed send rolls the claim back,
and a concurrent dispatcher blocks on the claimed row until the first one has
committed, then finds nothing left to claim. One e-mail per follow-up date.
"""
import logging
from datetime import timedelta
from smtplib import SMTPException

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from careslot.exceptions import NotEligible, NotFound, Unavailable, store_call
from .emails import send_appointment_reminder, send_follow_up_reminder
from .models import Appointment, Notification
from .notifications import notify_on_commit

logger = logging.getLogger(__name__)


def due_reminders(doctor_id=None, today=None):
    """Completed appointments whose follow-up date has arrived and that were not reminded yet."""
    today = today or timezone.localdate()
    qs = Appointment.objects.filter(
        status=Appointment.COMPLETED,
        follow_up_date__isnull=False,
        follow_up_date__lte=today,
        follow_up_sent=False,
    ).select_related('patient', 'doctor__user')
    if doctor_id is not None:
        qs = qs.filter(doctor_id=doctor_id)
    return list(qs.order_by('follow_up_date', 'id'))


@store_call
def dispatch(appointment_id) -> bool:
    """
    Send the follow-up reminder for one appointment.
    Returns True when this call sent it, False when it was already handled.
    """
    try:
        appointment = Appointment.objects.select_related('patient', 'doctor__user').get(pk=appointment_id)
    except Appointment.DoesNotExist:
        raise NotFound('Appointment not found.')

    if appointment.follow_up_date is None:
        raise NotEligible('No follow-up date is set for this appointment.')
    if appointment.follow_up_sent:
        return False
    # follow_up_sent_at must never predate the visit itself
    if timezone.now() < appointment.start_at:
        raise NotEligible('The appointment has not taken place yet.')
    if not appointment.patient.email:
        raise NotEligible('Patient has no email address on file.')

    with transaction.atomic():
        claimed = Appointment.objects.filter(
            pk=appointment.pk,
            follow_up_sent=False,
            follow_up_date=appointment.follow_up_date,
        ).update(follow_up_sent=True, follow_up_sent_at=timezone.now(), updated_at=timezone.now())
        if not claimed:
            logger.info('Follow-up for appointment %s already handled', appointment_id)
            return False

        try:
            send_follow_up_reminder(
                patient_name=appointment.patient.name or 'Patient',
                patient_email=appointment.patient.email,
                doctor_name=appointment.doctor.user.name,
                follow_up_date=appointment.follow_up_date,
                previous_appointment_date=appointment.appointment_date,
                notes=appointment.notes,
            )
        except (SMTPException, OSError) as exc:
            logger.warning('Follow-up e-mail for appointment %s failed: %s', appointment_id, exc)
            raise Unavailable('Could not send the follow-up reminder. Please retry later.') from exc

        notify_on_commit(
            appointment.patient_id,
            Notification.FOLLOW_UP_REMINDER,
            'Follow-up Reminder',
            f'Dr. {appointment.doctor.user.name} recommended a follow-up on {appointment.follow_up_date:%d %b %Y}.',
            appointment_id=appointment.id,
        )

    logger.info('Follow-up reminder sent for appointment %s', appointment_id)
    return True


def run_due_reminders(doctor_id=None, today=None):
    """Periodic scan. Safe to run while another scan or a manual dispatch is in flight."""
    counts = {'sent': 0, 'skipped': 0, 'failed': 0}
    due = due_reminders(doctor_id=doctor_id, today=today)
    logger.info('Found %d appointments with a due follow-up reminder', len(due))

    for appointment in due:
        try:
            sent = dispatch(appointment.id)
        except (NotEligible, Unavailable) as exc:
            logger.warning('Follow-up for appointment %s not sent: %s', appointment.id, exc.detail)
            counts['failed'] += 1
            continue
        counts['sent' if sent else 'skipped'] += 1

    logger.info('Follow-up reminder run finished: %(sent)d sent, %(skipped)d skipped, %(failed)d failed', counts)
    return counts


def list_follow_ups(doctor_id, upcoming=False, overdue=False, sent=None):
    """A doctor's appointments carrying a follow-up date, soonest first."""
    today = timezone.localdate()
    qs = Appointment.objects.filter(
        doctor_id=doctor_id, follow_up_date__isnull=False,
    ).select_related('patient', 'doctor__user')

    if upcoming:
        horizon = today + timedelta(days=settings.SCHEDULING['FOLLOW_UP_LIST_UPCOMING_DAYS'])
        qs = qs.filter(follow_up_date__gte=today, follow_up_date__lte=horizon)
    if overdue:
        qs = qs.filter(follow_up_date__lt=today, follow_up_sent=False)
    if sent is not None:
        qs = qs.filter(follow_up_sent=sent)
    return qs.order_by('follow_up_date', 'id')


# ─────────────────────────────────────────────
# Upcoming appointment reminders
# ─────────────────────────────────────────────

@store_call
def send_upcoming_reminders(now=None):
    """Remind patient and doctor of PENDING/CONFIRMED appointments starting within the window."""
    now = now or timezone.now()
    window_end = now + timedelta(hours=settings.SCHEDULING['UPCOMING_REMINDER_WINDOW_HOURS'])
    candidates = Appointment.objects.filter(
        status__in=[Appointment.PENDING, Appointment.CONFIRMED],
        reminder_sent=False,
        start_at__gte=now,
        start_at__lte=window_end,
    ).select_related('patient', 'doctor__user').order_by('start_at')

    counts = {'sent': 0, 'skipped': 0, 'failed': 0}
    for appointment in candidates:
        patient_email = appointment.patient.email
        doctor_email = appointment.doctor.user.email
        try:
            with transaction.atomic():
                claimed = Appointment.objects.filter(pk=appointment.pk, reminder_sent=False).update(
                    reminder_sent=True, updated_at=timezone.now())
                if not claimed:
                    counts['skipped'] += 1
                    continue
                if not (patient_email and doctor_email):
                    # stays claimed so it is not picked up again
                    logger.warning('Appointment %s has no patient or doctor e-mail, reminder skipped', appointment.id)
                    counts['skipped'] += 1
                    continue
                send_appointment_reminder(
                    patient_email=patient_email,
                    patient_name=appointment.patient.name or 'Patient',
                    doctor_email=doctor_email,
                    doctor_name=appointment.doctor.user.name,
                    appointment_date=appointment.appointment_date,
                    appointment_time=appointment.appointment_time,
                    clinic_location=appointment.doctor.clinic_location,
                    online=appointment.appointment_type == Appointment.ONLINE,
                )
                notify_on_commit(
                    appointment.patient_id,
                    Notification.APPOINTMENT_REMINDER,
                    'Appointment Reminder',
                    f'Reminder: appointment with Dr. {appointment.doctor.user.name} on '
                    f'{appointment.appointment_date:%d %b %Y} at {appointment.appointment_time:%H:%M}.',
                    appointment_id=appointment.id,
                )
        except (SMTPException, OSError) as exc:
            logger.warning('Reminder e-mail for appointment %s failed: %s', appointment.id, exc)
            counts['failed'] += 1
            continue
        counts['sent'] += 1

    logger.info('Appointment reminder run: %(sent)d sent, %(skipped)d skipped, %(failed)d failed', counts)
    return counts
