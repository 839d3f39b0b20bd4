"""
Tests for appointments/booking.py

Slot-based and direct reservations, their conflict paths and the
notifications emitted after commit.
"""
import uuid
from datetime import date, time
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework.exceptions import ValidationError

from appointments import booking, transitions
from appointments.models import Appointment, Notification
from careslot.exceptions import Conflict, NotFound
from careslot.tests.factories import make_doctor, make_patient, make_slot
from doctors import blocked_dates, slots
from doctors.calendar import aware
from doctors.models import TimeSlot

DAY = date(2025, 6, 10)


class TestReserveSlot(TestCase):

    def setUp(self):
        self.doctor = make_doctor()
        self.patient = make_patient()
        self.slot = make_slot(self.doctor, DAY, time(9, 0), fee=Decimal('150'))

    def test_reserve_books_slot_and_creates_pending_appointment(self):
        with self.captureOnCommitCallbacks(execute=True):
            appointment = booking.reserve(self.slot.id, self.patient.id, reason='Fever')

        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, TimeSlot.BOOKED)
        self.assertEqual(appointment.status, Appointment.PENDING)
        self.assertEqual(appointment.time_slot_id, self.slot.id)
        self.assertEqual(appointment.doctor_id, self.doctor.id)
        self.assertEqual(appointment.appointment_date, DAY)
        self.assertEqual(appointment.appointment_time, time(9, 0))
        self.assertEqual(appointment.duration_minutes, 30)
        self.assertEqual(appointment.consultation_fee, Decimal('150'))
        self.assertEqual(appointment.reason, 'Fever')

        self.assertTrue(Notification.objects.filter(
            user=self.doctor.user, type=Notification.NEW_APPOINTMENT, appointment=appointment).exists())
        self.assertTrue(Notification.objects.filter(
            user=self.patient, type=Notification.APPOINTMENT_PENDING, appointment=appointment).exists())

    def test_second_booking_of_same_slot_conflicts(self):
        booking.reserve(self.slot.id, self.patient.id)
        other = make_patient(name='Ravi', email='ravi@example.com')

        with self.assertRaises(Conflict):
            booking.reserve(self.slot.id, other.id)

        self.assertEqual(Appointment.objects.filter(time_slot=self.slot).count(), 1)

    def test_lost_update_is_detected(self):
        # the read says AVAILABLE but another booker flipped the row in between
        stale = TimeSlot.objects.select_related('doctor__user').get(pk=self.slot.pk)
        TimeSlot.objects.filter(pk=self.slot.pk).update(status=TimeSlot.BOOKED)

        with mock.patch('appointments.booking._load_slot', return_value=stale):
            with self.assertRaises(Conflict):
                booking.reserve(self.slot.id, self.patient.id)

        self.assertFalse(Appointment.objects.exists())

    def test_slot_moved_after_read_is_not_booked_at_old_time(self):
        stale = TimeSlot.objects.select_related('doctor__user').get(pk=self.slot.pk)
        slots.update_slot(self.doctor.id, self.slot.id,
                          start=aware(DAY, time(14, 0)), end=aware(DAY, time(14, 30)))

        with mock.patch('appointments.booking._load_slot', return_value=stale):
            with self.assertRaises(Conflict):
                booking.reserve(self.slot.id, self.patient.id)

        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, TimeSlot.AVAILABLE)
        self.assertEqual(self.slot.start_time, aware(DAY, time(14, 0)))
        self.assertFalse(Appointment.objects.exists())

        appointment = booking.reserve(self.slot.id, self.patient.id)
        self.assertEqual(appointment.start_at, self.slot.start_time)
        self.assertEqual(appointment.end_at, self.slot.end_time)

    def test_slot_repriced_after_read_books_current_fee(self):
        stale = TimeSlot.objects.select_related('doctor__user').get(pk=self.slot.pk)
        slots.update_slot(self.doctor.id, self.slot.id, fee=Decimal('200'))

        with mock.patch('appointments.booking._load_slot', return_value=stale):
            appointment = booking.reserve(self.slot.id, self.patient.id)

        self.assertEqual(appointment.consultation_fee, Decimal('200'))

    def test_no_notification_when_booking_fails(self):
        booking.reserve(self.slot.id, self.patient.id)
        Notification.objects.all().delete()
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(Conflict):
                booking.reserve(self.slot.id, make_patient(name='Ravi', email='ravi@example.com').id)
        self.assertFalse(Notification.objects.exists())

    def test_unknown_slot(self):
        with self.assertRaises(NotFound):
            booking.reserve(999999, self.patient.id)

    def test_non_available_slot_conflicts(self):
        for slot_status in (TimeSlot.BLOCKED, TimeSlot.CANCELLED):
            TimeSlot.objects.filter(pk=self.slot.pk).update(status=slot_status)
            with self.assertRaises(Conflict):
                booking.reserve(self.slot.id, self.patient.id)

    def test_blocked_day_conflicts_even_for_existing_slot(self):
        blocked_dates.block(self.doctor.id, DAY, reason='Conference')

        with self.assertRaisesMessage(Conflict, 'Conference'):
            booking.reserve(self.slot.id, self.patient.id)

        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, TimeSlot.AVAILABLE)

    def test_patient_overlap_conflicts(self):
        other_doctor = make_doctor(name='Other', email='other@example.com')
        booking.reserve(make_slot(other_doctor, DAY, time(9, 15)).id, self.patient.id)

        with self.assertRaises(Conflict):
            booking.reserve(self.slot.id, self.patient.id)

        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, TimeSlot.AVAILABLE)

    def test_cancelled_appointment_does_not_count_as_overlap(self):
        other_doctor = make_doctor(name='Other', email='other@example.com')
        earlier = booking.reserve(make_slot(other_doctor, DAY, time(9, 0)).id, self.patient.id)
        transitions.cancel(earlier.id, transitions.PATIENT)

        appointment = booking.reserve(self.slot.id, self.patient.id)
        self.assertEqual(appointment.status, Appointment.PENDING)

    def test_released_slot_can_be_booked_again(self):
        first = booking.reserve(self.slot.id, self.patient.id)
        transitions.cancel(first.id, transitions.PATIENT)

        second = booking.reserve(self.slot.id, make_patient(name='Ravi', email='ravi@example.com').id)

        self.assertEqual(second.time_slot_id, self.slot.id)
        self.assertEqual(Appointment.objects.filter(time_slot=self.slot).live().count(), 1)


class TestReserveDirect(TestCase):

    def setUp(self):
        self.doctor = make_doctor(fee='120.00')
        self.patient = make_patient()

    def test_direct_booking(self):
        with self.captureOnCommitCallbacks(execute=True):
            appointment = booking.reserve_direct(
                self.doctor.id, self.patient.id, DAY, time(15, 0), duration_minutes=45,
                appointment_type=Appointment.ONLINE,
            )

        self.assertIsNone(appointment.time_slot_id)
        self.assertEqual(appointment.status, Appointment.PENDING)
        self.assertEqual(appointment.start_at, aware(DAY, time(15, 0)))
        self.assertEqual(appointment.end_at, aware(DAY, time(15, 45)))
        self.assertEqual(appointment.consultation_fee, Decimal('120.00'))
        self.assertEqual(appointment.appointment_type, Appointment.ONLINE)
        self.assertEqual(Notification.objects.filter(appointment=appointment).count(), 2)

    def test_default_duration(self):
        appointment = booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(15, 0))
        self.assertEqual(appointment.duration_minutes, 30)

    def test_overlapping_direct_booking_conflicts(self):
        booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(15, 0))
        other = make_patient(name='Ravi', email='ravi@example.com')

        with self.assertRaises(Conflict):
            booking.reserve_direct(self.doctor.id, other.id, DAY, time(15, 15))

        self.assertEqual(Appointment.objects.count(), 1)

    def test_overlap_with_published_slot_conflicts(self):
        make_slot(self.doctor, DAY, time(15, 0))
        with self.assertRaises(Conflict):
            booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(15, 15))

    def test_cancelled_slot_does_not_conflict(self):
        make_slot(self.doctor, DAY, time(15, 0), status=TimeSlot.CANCELLED)
        appointment = booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(15, 0))
        self.assertEqual(appointment.status, Appointment.PENDING)

    def test_pending_request_with_same_doctor_conflicts(self):
        booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(9, 0))
        with self.assertRaisesMessage(Conflict, 'pending appointment request'):
            booking.reserve_direct(self.doctor.id, self.patient.id, date(2025, 6, 20), time(9, 0))

    def test_cancelled_direct_window_is_rebookable(self):
        first = booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(15, 0))
        transitions.cancel(first.id, transitions.PATIENT)

        other = make_patient(name='Ravi', email='ravi@example.com')
        second = booking.reserve_direct(self.doctor.id, other.id, DAY, time(15, 0))
        self.assertEqual(second.status, Appointment.PENDING)

    def test_blocked_window_conflicts(self):
        blocked_dates.block(self.doctor.id, DAY, start_time=time(14, 0), end_time=time(16, 0))
        with self.assertRaises(Conflict):
            booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(15, 30))

    def test_duration_limits(self):
        with self.assertRaises(ValidationError):
            booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(9, 0), duration_minutes=181)

    def test_unknown_doctor_and_patient(self):
        with self.assertRaises(NotFound):
            booking.reserve_direct(999999, self.patient.id, DAY, time(9, 0))
        with self.assertRaises(NotFound):
            booking.reserve_direct(self.doctor.id, uuid.UUID(int=1), DAY, time(9, 0))

    def test_later_generation_skips_direct_window(self):
        booking.reserve_direct(self.doctor.id, self.patient.id, DAY, time(9, 0))

        result = slots.generate_slots(self.doctor.id, DAY, DAY, [(time(9, 0), time(10, 0))], 30)

        self.assertEqual(len(result.created), 1)
        self.assertEqual(TimeSlot.objects.get(pk=result.created[0]).start_time, aware(DAY, time(9, 30)))
        self.assertEqual(result.skipped[0]['start_time'], '09:00')
