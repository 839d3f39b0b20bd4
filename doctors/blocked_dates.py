import logging
from collections import defaultdict
from datetime import time

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from careslot.exceptions import Conflict, NotFound, store_call
from .calendar import lock_doctor
from .models import BlockedDate

logger = logging.getLogger(__name__)


@store_call
def block(doctor_id, day, reason=None, start_time=None, end_time=None) -> BlockedDate:
    """
    Block a whole day, or a wall-clock window of it when both times are given.
    Already booked slots on that day are not touched.
    """
    is_full_day = start_time is None and end_time is None
    if not is_full_day:
        if start_time is None or end_time is None:
            raise ValidationError('start_time and end_time must both be set for a partial block.')
        if start_time >= end_time:
            raise ValidationError('start_time must be before end_time.')

    with transaction.atomic():
        doctor = lock_doctor(doctor_id)
        existing = list(BlockedDate.objects.filter(doctor=doctor, date=day))

        if is_full_day and existing:
            raise Conflict('A block already exists for this date. Please delete existing blocks first.')
        for other in existing:
            if other.is_full_day:
                raise Conflict('This date has a full-day block. Cannot add partial blocks.')
            if other.intersects(start_time, end_time):
                raise Conflict('Time range overlaps with an existing block.')

        blocked = BlockedDate.objects.create(
            doctor=doctor,
            date=day,
            is_full_day=is_full_day,
            start_time=start_time,
            end_time=end_time,
            reason=reason or None,
        )

    logger.info('Doctor %s blocked %s (full_day=%s)', doctor_id, day, is_full_day)
    return blocked


@store_call
def unblock(blocked_date_id, doctor_id=None):
    qs = BlockedDate.objects.filter(pk=blocked_date_id)
    if doctor_id is not None:
        qs = qs.filter(doctor_id=doctor_id)
    deleted, _ = qs.delete()
    if not deleted:
        raise NotFound('Blocked date not found.')
    logger.info('Blocked date %s removed', blocked_date_id)


def is_blocked(doctor_id, day) -> bool:
    """True when the doctor has a full-day block on `day`."""
    return BlockedDate.objects.filter(doctor_id=doctor_id, date=day, is_full_day=True).exists()


def blocks_between(doctor_id, start_date, end_date):
    """{date: [BlockedDate, ...]} for the doctor over an inclusive date range."""
    blocks = defaultdict(list)
    for blocked in BlockedDate.objects.filter(doctor_id=doctor_id, date__range=(start_date, end_date)):
        blocks[blocked.date].append(blocked)
    return blocks


def describe(blocked: BlockedDate) -> str:
    if blocked.is_full_day:
        text = f"Doctor is unavailable on {blocked.date:%d %b %Y}"
    else:
        text = f"Doctor is unavailable during {blocked.start_time:%H:%M}-{blocked.end_time:%H:%M}"
    if blocked.reason:
        text += f" ({blocked.reason})"
    return text


def first_block_hit(blocks, start, end):
    """
    First block in `blocks` ({date: [...]}) that intersects the aware interval
    [start, end), or None. Intervals crossing midnight are checked day by day.
    """
    local_start = timezone.localtime(start)
    local_end = timezone.localtime(end)
    for day in sorted(blocks):
        if day < local_start.date() or day > local_end.date():
            continue
        window_start = local_start.time() if day == local_start.date() else time.min
        if day == local_end.date():
            if local_end.time() == time.min:
                continue
            window_end = local_end.time()
        else:
            window_end = time.max
        for blocked in blocks[day]:
            if blocked.intersects(window_start, window_end):
                return blocked
    return None


def blocking_reason(doctor_id, start, end):
    """Human readable reason when any block hits [start, end), otherwise None."""
    local_start = timezone.localtime(start)
    local_end = timezone.localtime(end)
    hit = first_block_hit(blocks_between(doctor_id, local_start.date(), local_end.date()), start, end)
    return describe(hit) if hit else None
