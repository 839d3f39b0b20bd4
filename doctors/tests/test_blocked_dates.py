from datetime import date, time, timedelta

from django.test import TestCase
from rest_framework.exceptions import ValidationError

from careslot.exceptions import Conflict, NotFound
from careslot.tests.factories import make_doctor, make_slot
from doctors import blocked_dates
from doctors.calendar import aware
from doctors.models import BlockedDate, TimeSlot

DAY = date(2025, 6, 11)


class TestBlockedDates(TestCase):

    def setUp(self):
        self.doctor = make_doctor()

    def test_full_day_block(self):
        blocked = blocked_dates.block(self.doctor.id, DAY, reason='Conference')

        self.assertTrue(blocked.is_full_day)
        self.assertTrue(blocked_dates.is_blocked(self.doctor.id, DAY))
        self.assertFalse(blocked_dates.is_blocked(self.doctor.id, DAY + timedelta(days=1)))

    def test_partial_block_is_not_a_blocked_day(self):
        blocked_dates.block(self.doctor.id, DAY, start_time=time(14, 0), end_time=time(16, 0))
        self.assertFalse(blocked_dates.is_blocked(self.doctor.id, DAY))

    def test_partial_block_needs_both_times_in_order(self):
        with self.assertRaises(ValidationError):
            blocked_dates.block(self.doctor.id, DAY, start_time=time(14, 0))
        with self.assertRaises(ValidationError):
            blocked_dates.block(self.doctor.id, DAY, start_time=time(16, 0), end_time=time(14, 0))

    def test_second_full_day_block_conflicts(self):
        blocked_dates.block(self.doctor.id, DAY)
        with self.assertRaises(Conflict):
            blocked_dates.block(self.doctor.id, DAY)

    def test_partial_block_on_full_day_conflicts(self):
        blocked_dates.block(self.doctor.id, DAY)
        with self.assertRaises(Conflict):
            blocked_dates.block(self.doctor.id, DAY, start_time=time(9, 0), end_time=time(10, 0))

    def test_full_day_block_over_partial_conflicts(self):
        blocked_dates.block(self.doctor.id, DAY, start_time=time(9, 0), end_time=time(10, 0))
        with self.assertRaises(Conflict):
            blocked_dates.block(self.doctor.id, DAY)

    def test_partial_blocks_may_not_overlap(self):
        blocked_dates.block(self.doctor.id, DAY, start_time=time(9, 0), end_time=time(10, 0))
        blocked_dates.block(self.doctor.id, DAY, start_time=time(10, 0), end_time=time(11, 0))
        with self.assertRaises(Conflict):
            blocked_dates.block(self.doctor.id, DAY, start_time=time(10, 30), end_time=time(12, 0))

    def test_blocking_leaves_booked_slots_alone(self):
        booked = make_slot(self.doctor, DAY, time(9, 0), status=TimeSlot.BOOKED)
        blocked_dates.block(self.doctor.id, DAY)
        booked.refresh_from_db()
        self.assertEqual(booked.status, TimeSlot.BOOKED)

    def test_unblock(self):
        blocked = blocked_dates.block(self.doctor.id, DAY)
        blocked_dates.unblock(blocked.id, doctor_id=self.doctor.id)
        self.assertFalse(BlockedDate.objects.exists())
        with self.assertRaises(NotFound):
            blocked_dates.unblock(blocked.id)

    def test_unblock_is_scoped_to_doctor(self):
        blocked = blocked_dates.block(self.doctor.id, DAY)
        other = make_doctor(name='Other', email='other@example.com')
        with self.assertRaises(NotFound):
            blocked_dates.unblock(blocked.id, doctor_id=other.id)

    def test_blocking_reason(self):
        blocked_dates.block(self.doctor.id, DAY, start_time=time(14, 0), end_time=time(16, 0), reason='Surgery')

        self.assertEqual(
            blocked_dates.blocking_reason(self.doctor.id, aware(DAY, time(15, 0)), aware(DAY, time(15, 30))),
            'Doctor is unavailable during 14:00-16:00 (Surgery)',
        )
        self.assertIsNone(
            blocked_dates.blocking_reason(self.doctor.id, aware(DAY, time(16, 0)), aware(DAY, time(16, 30))))

    def test_interval_ending_at_midnight_does_not_hit_next_day(self):
        blocked_dates.block(self.doctor.id, DAY)
        previous = DAY - timedelta(days=1)
        self.assertIsNone(
            blocked_dates.blocking_reason(self.doctor.id, aware(previous, time(23, 30)), aware(DAY, time(0, 0))))
        self.assertEqual(
            blocked_dates.blocking_reason(self.doctor.id, aware(previous, time(23, 30)), aware(DAY, time(0, 30))),
            'Doctor is unavailable on 11 Jun 2025',
        )
