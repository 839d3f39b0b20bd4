"""
Slot generation and doctor-side slot maintenance.

Generation is a best-effort batch: every candidate interval either becomes an
AVAILABLE slot or is reported back as skipped with a reason. A blocked day or an
overlap is never an error for the batch as a whole.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, List, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from careslot.exceptions import Conflict, NotFound, store_call
from .blocked_dates import blocks_between, blocking_reason, describe, first_block_hit
from .calendar import aware, daterange, lock_doctor, overlapping_appointment, overlapping_slot
from .models import DAY_CHOICES, DoctorAvailability, TimeSlot

logger = logging.getLogger(__name__)

WEEKDAYS = [day for day, _ in DAY_CHOICES]

# (day, window start, window end, slot duration in minutes)
PlanEntry = Tuple[date, time, time, int]


@dataclass
class GenerationResult:
    created: List[int] = field(default_factory=list)
    skipped: List[dict] = field(default_factory=list)

    def skip(self, start, end, reason):
        local_start = timezone.localtime(start)
        self.skipped.append({
            'date': local_start.date().isoformat(),
            'start_time': f"{local_start:%H:%M}",
            'end_time': f"{timezone.localtime(end):%H:%M}",
            'reason': reason,
        })


def _scheduling(key):
    return settings.SCHEDULING[key]


def _validate_duration(minutes):
    limit = _scheduling('MAX_SLOT_DURATION_MINUTES')
    if not minutes or minutes <= 0 or minutes > limit:
        raise ValidationError(f'Slot duration must be between 1 and {limit} minutes.')


def _validate_range(start_date, end_date):
    if end_date < start_date:
        raise ValidationError('End date must be on or after start date.')


@store_call
def generate_slots(doctor_id, start_date: date, end_date: date,
                   daily_windows: Iterable[Tuple[time, time]],
                   slot_duration_minutes: int, fee=None) -> GenerationResult:
    """
    Cut every window of every day in [start_date, end_date] into consecutive
    `slot_duration_minutes` slots. A trailing remainder shorter than one slot
    is dropped.
    """
    _validate_range(start_date, end_date)
    _validate_duration(slot_duration_minutes)
    windows = list(daily_windows)
    if not windows:
        raise ValidationError('At least one daily window is required.')
    for window_start, window_end in windows:
        if window_start >= window_end:
            raise ValidationError('Window start time must be before its end time.')

    plan = [
        (day, window_start, window_end, slot_duration_minutes)
        for day in daterange(start_date, end_date)
        for window_start, window_end in windows
    ]
    return _generate(doctor_id, plan, fee)


@store_call
def generate_slots_from_schedule(doctor_id, start_date: date, end_date: date, fee=None) -> GenerationResult:
    """Generate slots from the doctor's active weekly schedule (DoctorAvailability rows)."""
    _validate_range(start_date, end_date)
    schedule = {}
    for availability in DoctorAvailability.objects.filter(doctor_id=doctor_id, is_active=True):
        schedule.setdefault(availability.day, []).append(availability)

    plan = [
        (day, availability.start_time, availability.end_time, availability.slot_duration_minutes)
        for day in daterange(start_date, end_date)
        for availability in schedule.get(WEEKDAYS[day.weekday()], [])
    ]
    return _generate(doctor_id, plan, fee)


def _generate(doctor_id, plan: List[PlanEntry], fee) -> GenerationResult:
    from appointments.models import Appointment

    result = GenerationResult()
    with transaction.atomic():
        doctor = lock_doctor(doctor_id)
        if not plan:
            return result
        if fee is None:
            fee = doctor.consultation_fee

        first_day = min(entry[0] for entry in plan)
        last_day = max(entry[0] for entry in plan)
        range_start = aware(first_day, time.min)
        range_end = aware(last_day + timedelta(days=1), time.min)

        blocks = blocks_between(doctor.id, first_day, last_day)
        taken = [
            (slot.start_time, slot.end_time, 'Overlaps with existing slot')
            for slot in TimeSlot.objects.filter(doctor=doctor).active().overlapping(range_start, range_end)
        ]
        taken += [
            (appt.start_at, appt.end_at, 'Overlaps with existing appointment')
            for appt in Appointment.objects.filter(doctor=doctor, time_slot__isnull=True)
            .live().overlapping(range_start, range_end)
        ]

        for day, window_start, window_end, minutes in plan:
            _validate_duration(minutes)
            step = timedelta(minutes=minutes)
            current = aware(day, window_start)
            limit = aware(day, window_end)
            while current + step <= limit:
                slot_end = current + step
                blocked = first_block_hit(blocks, current, slot_end)
                clash = next((reason for s, e, reason in taken if s < slot_end and e > current), None)
                if blocked:
                    result.skip(current, slot_end, describe(blocked))
                elif clash:
                    result.skip(current, slot_end, clash)
                else:
                    slot = TimeSlot.objects.create(
                        doctor=doctor, start_time=current, end_time=slot_end, consultation_fee=fee,
                    )
                    taken.append((current, slot_end, 'Overlaps with existing slot'))
                    result.created.append(slot.id)
                current = slot_end

    logger.info(
        'Slot generation for doctor %s: %d created, %d skipped',
        doctor_id, len(result.created), len(result.skipped),
    )
    return result


# ─────────────────────────────────────────────
# Single slot maintenance
# ─────────────────────────────────────────────

def _validate_interval(start, end):
    if end <= start:
        raise ValidationError('End time must be after start time.')
    if end - start > timedelta(hours=_scheduling('MAX_SINGLE_SLOT_HOURS')):
        raise ValidationError(f"A time slot can be at most {_scheduling('MAX_SINGLE_SLOT_HOURS')} hours long.")


def _ensure_free(doctor_id, start, end, exclude_slot_id=None):
    reason = blocking_reason(doctor_id, start, end)
    if reason:
        raise Conflict(reason)
    if overlapping_slot(doctor_id, start, end, exclude_slot_id=exclude_slot_id):
        raise Conflict('Timeslot overlaps with an existing timeslot.')
    if overlapping_appointment(doctor_id, start, end, exclude_slot_id=exclude_slot_id):
        raise Conflict('Timeslot overlaps with an existing appointment.')


@store_call
def create_slot(doctor_id, start, end, fee=None) -> TimeSlot:
    _validate_interval(start, end)
    with transaction.atomic():
        doctor = lock_doctor(doctor_id)
        _ensure_free(doctor.id, start, end)
        slot = TimeSlot.objects.create(
            doctor=doctor,
            start_time=start,
            end_time=end,
            consultation_fee=doctor.consultation_fee if fee is None else fee,
        )
    logger.info('Doctor %s added slot %s', doctor_id, slot.id)
    return slot


def _get_locked_slot(doctor_id, slot_id) -> TimeSlot:
    try:
        return TimeSlot.objects.select_for_update().get(pk=slot_id, doctor_id=doctor_id)
    except TimeSlot.DoesNotExist:
        raise NotFound('Time slot not found.')


EDITABLE_STATUSES = (TimeSlot.AVAILABLE, TimeSlot.BLOCKED, TimeSlot.CANCELLED)


@store_call
def update_slot(doctor_id, slot_id, start=None, end=None, status: Optional[str] = None, fee=None) -> TimeSlot:
    """
    Move, re-price or (un)block a slot. BOOKED slots are frozen: the appointment
    has to be cancelled first, which releases the slot.
    """
    if status is not None and status not in EDITABLE_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(EDITABLE_STATUSES)}.")

    with transaction.atomic():
        lock_doctor(doctor_id)
        slot = _get_locked_slot(doctor_id, slot_id)
        if slot.status == TimeSlot.BOOKED:
            raise Conflict('Booked time slots cannot be edited. Cancel the appointment first.')

        new_start = start or slot.start_time
        new_end = end or slot.end_time
        new_status = status or slot.status
        if start or end:
            _validate_interval(new_start, new_end)
        if new_status != TimeSlot.CANCELLED and (start or end or slot.status == TimeSlot.CANCELLED):
            _ensure_free(doctor_id, new_start, new_end, exclude_slot_id=slot.id)

        slot.start_time = new_start
        slot.end_time = new_end
        slot.status = new_status
        if fee is not None:
            slot.consultation_fee = fee
        slot.save()

    logger.info('Doctor %s updated slot %s (status=%s)', doctor_id, slot_id, slot.status)
    return slot


@store_call
def delete_slot(doctor_id, slot_id) -> str:
    """
    Remove a slot. Slots with appointment history are cancelled instead of
    deleted so the history keeps pointing at them. Returns 'deleted' or 'cancelled'.
    """
    with transaction.atomic():
        slot = _get_locked_slot(doctor_id, slot_id)
        if slot.status == TimeSlot.BOOKED:
            raise Conflict('Cannot delete a time slot with an existing appointment.')
        if slot.appointments.exists():
            TimeSlot.objects.filter(pk=slot.pk).update(status=TimeSlot.CANCELLED, updated_at=timezone.now())
            outcome = 'cancelled'
        else:
            slot.delete()
            outcome = 'deleted'

    logger.info('Doctor %s %s slot %s', doctor_id, outcome, slot_id)
    return outcome


def open_slots(doctor_id, start_date=None, end_date=None) -> List[TimeSlot]:
    """Future AVAILABLE slots of the doctor that no block currently covers."""
    qs = TimeSlot.objects.filter(
        doctor_id=doctor_id, status=TimeSlot.AVAILABLE, start_time__gt=timezone.now())
    if start_date:
        qs = qs.filter(start_time__gte=aware(start_date, time.min))
    if end_date:
        qs = qs.filter(start_time__lt=aware(end_date + timedelta(days=1), time.min))

    slots = list(qs.order_by('start_time'))
    if not slots:
        return []
    blocks = blocks_between(doctor_id, slots[0].local_start.date(), slots[-1].local_end.date())
    return [slot for slot in slots if not first_block_hit(blocks, slot.start_time, slot.end_time)]
