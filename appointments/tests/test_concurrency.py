"""
Races between real database connections.

Each contender runs in its own thread, and so on its own connection and
transaction. Needs a store with row-level locking (PostgreSQL: set DB_NAME);
SQLite locks the whole file and is skipped.
"""
import threading
from datetime import date, time
from time import sleep
from unittest import mock

from django.core import mail
from django.db import connection
from django.test import TransactionTestCase, skipUnlessDBFeature

from appointments import booking, followups, transitions
from appointments.models import Appointment
from careslot.exceptions import Conflict
from careslot.tests.factories import make_doctor, make_patient, make_slot
from doctors.models import TimeSlot

DAY = date(2025, 6, 10)


class Contender(threading.Thread):
    """Runs `call` on a fresh connection and keeps its result or exception."""

    def __init__(self, call):
        super().__init__(daemon=True)
        self.call = call
        self.result = None
        self.error = None

    def run(self):
        try:
            self.result = self.call()
        except Exception as exc:
            self.error = exc
        finally:
            connection.close()


@skipUnlessDBFeature('has_select_for_update')
class TestConcurrentSlotBooking(TransactionTestCase):

    def setUp(self):
        self.doctor = make_doctor()
        self.slot = make_slot(self.doctor, DAY, time(9, 0))
        self.patients = [
            make_patient(name='Asha Rao', email='asha@example.com'),
            make_patient(name='Ravi', email='ravi@example.com'),
        ]

    def test_exactly_one_of_two_simultaneous_bookings_wins(self):
        both_read = threading.Barrier(2, timeout=10)
        load_slot = booking._load_slot

        def load_then_wait(slot_id):
            slot = load_slot(slot_id)
            # both bookers have seen AVAILABLE before either one swaps
            both_read.wait()
            return slot

        contenders = [
            Contender(lambda patient_id=patient.id: booking.reserve(self.slot.id, patient_id))
            for patient in self.patients
        ]
        with mock.patch('appointments.booking._load_slot', side_effect=load_then_wait):
            for contender in contenders:
                contender.start()
            for contender in contenders:
                contender.join(timeout=30)

        winners = [c.result for c in contenders if isinstance(c.result, Appointment)]
        losers = [c.error for c in contenders if c.error is not None]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), 1)
        self.assertIsInstance(losers[0], Conflict)

        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, TimeSlot.BOOKED)
        self.assertEqual(list(Appointment.objects.filter(time_slot=self.slot).values_list('id', flat=True)),
                         [winners[0].id])


@skipUnlessDBFeature('has_select_for_update')
class TestConcurrentFollowUpDispatch(TransactionTestCase):

    def setUp(self):
        doctor = make_doctor()
        patient = make_patient()
        appointment = booking.reserve(make_slot(doctor, DAY, time(9, 0)).id, patient.id)
        transitions.confirm(appointment.id)
        self.appointment = transitions.complete(appointment.id, follow_up_date=date(2025, 6, 24))

    def test_manual_send_racing_the_scan_sends_one_email(self):
        sending = threading.Event()
        send = followups.send_follow_up_reminder
        sends = []

        def slow_send(**kwargs):
            sends.append(kwargs['patient_email'])
            sending.set()
            # hold the claimed row while the rival reaches its own claim
            sleep(0.5)
            send(**kwargs)

        manual = Contender(lambda: followups.dispatch(self.appointment.id))
        scan = Contender(lambda: followups.run_due_reminders(today=date(2025, 6, 25)))

        with mock.patch('appointments.followups.send_follow_up_reminder', side_effect=slow_send):
            manual.start()
            self.assertTrue(sending.wait(timeout=10))
            scan.start()
            manual.join(timeout=30)
            scan.join(timeout=30)

        self.assertIsNone(manual.error)
        self.assertIsNone(scan.error)
        self.assertIs(manual.result, True)
        self.assertEqual(scan.result['sent'], 0)
        self.assertEqual(sends, ['asha@example.com'])
        self.assertEqual(len(mail.outbox), 1)

        self.appointment.refresh_from_db()
        self.assertTrue(self.appointment.follow_up_sent)

    def test_two_simultaneous_dispatches_send_one_email(self):
        both_ready = threading.Barrier(2, timeout=10)

        def dispatch_together():
            both_ready.wait()
            return followups.dispatch(self.appointment.id)

        contenders = [Contender(dispatch_together) for _ in range(2)]
        for contender in contenders:
            contender.start()
        for contender in contenders:
            contender.join(timeout=30)

        self.assertEqual([c.error for c in contenders], [None, None])
        self.assertEqual(sorted(c.result for c in contenders), [False, True])
        self.assertEqual(len(mail.outbox), 1)

        self.appointment.refresh_from_db()
        self.assertTrue(self.appointment.follow_up_sent)
