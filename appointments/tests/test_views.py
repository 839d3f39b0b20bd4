from datetime import time, timedelta

from django.core import mail
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from appointments import booking, transitions
from appointments.models import Appointment, Notification
from careslot.tests.factories import make_doctor, make_patient, make_slot
from doctors.models import TimeSlot


class AppointmentApiTestCase(TestCase):

    def setUp(self):
        self.doctor = make_doctor()
        self.patient = make_patient()
        self.day = timezone.localdate() + timedelta(days=5)
        self.slot = make_slot(self.doctor, self.day, time(9, 0))

        self.patient_client = APIClient()
        self.patient_client.force_authenticate(self.patient)
        self.doctor_client = APIClient()
        self.doctor_client.force_authenticate(self.doctor.user)


class TestPatientBookingApi(AppointmentApiTestCase):

    def test_book_slot(self):
        response = self.patient_client.post('/api/appointments/my/', {
            'time_slot': self.slot.id, 'reason': 'Cough',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['appointment']['status'], Appointment.PENDING)
        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, TimeSlot.BOOKED)

    def test_booked_slot_is_409_with_message_and_code(self):
        booking.reserve(self.slot.id, make_patient(name='Ravi', email='ravi@example.com').id)

        response = self.patient_client.post('/api/appointments/my/', {'time_slot': self.slot.id}, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'conflict')
        self.assertTrue(response.data['message'])

    def test_past_slot_is_rejected(self):
        past = make_slot(self.doctor, timezone.localdate() - timedelta(days=1), time(9, 0))
        response = self.patient_client.post('/api/appointments/my/', {'time_slot': past.id}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_unknown_slot_is_404(self):
        response = self.patient_client.post('/api/appointments/my/', {'time_slot': 999999}, format='json')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['code'], 'not_found')

    def test_direct_booking(self):
        response = self.patient_client.post('/api/appointments/my/', {
            'doctor': self.doctor.id,
            'date': self.day.isoformat(),
            'time': '15:00',
            'appointment_type': Appointment.ONLINE,
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertIsNone(response.data['appointment']['time_slot'])

    def test_direct_booking_in_the_past(self):
        response = self.patient_client.post('/api/appointments/my/', {
            'doctor': self.doctor.id,
            'date': (timezone.localdate() - timedelta(days=1)).isoformat(),
            'time': '15:00',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_doctor_cannot_book(self):
        response = self.doctor_client.post('/api/appointments/my/', {'time_slot': self.slot.id}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_list_and_filter(self):
        booking.reserve(self.slot.id, self.patient.id)

        response = self.patient_client.get('/api/appointments/my/', {'status': Appointment.PENDING})
        self.assertEqual(len(response.data), 1)
        response = self.patient_client.get('/api/appointments/my/', {'status': Appointment.CONFIRMED})
        self.assertEqual(response.data, [])

    def test_cancel(self):
        appointment = booking.reserve(self.slot.id, self.patient.id)

        response = self.patient_client.put(f'/api/appointments/my/{appointment.id}/', {
            'status': Appointment.CANCELLED, 'cancellation_reason': 'Travelling',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], Appointment.CANCELLED)
        self.assertEqual(response.data['cancelled_by'], 'patient')

    def test_patient_cannot_confirm(self):
        appointment = booking.reserve(self.slot.id, self.patient.id)
        response = self.patient_client.put(f'/api/appointments/my/{appointment.id}/', {
            'status': Appointment.CONFIRMED,
        }, format='json')
        self.assertEqual(response.status_code, 403)

    def test_other_patients_appointment_is_404(self):
        appointment = booking.reserve(self.slot.id, make_patient(name='Ravi', email='ravi@example.com').id)
        response = self.patient_client.get(f'/api/appointments/my/{appointment.id}/')
        self.assertEqual(response.status_code, 404)


class TestDoctorAppointmentApi(AppointmentApiTestCase):

    def setUp(self):
        super().setUp()
        self.appointment = booking.reserve(self.slot.id, self.patient.id)
        self.url = f'/api/appointments/doctor/{self.appointment.id}/'

    def test_confirm_then_complete(self):
        response = self.doctor_client.put(self.url, {'action': 'confirm'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], Appointment.CONFIRMED)

        response = self.doctor_client.put(self.url, {
            'action': 'complete',
            'notes': 'Viral fever',
            'prescription': 'Rest and fluids',
            'follow_up_date': (self.day + timedelta(days=14)).isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], Appointment.COMPLETED)

        detail = self.doctor_client.get(self.url)
        self.assertEqual(detail.data['history']['prescription'], 'Rest and fluids')

    def test_illegal_action_is_400(self):
        response = self.doctor_client.put(self.url, {'action': 'complete'}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_reject_releases_slot(self):
        response = self.doctor_client.put(self.url, {'action': 'reject', 'reason': 'Fully booked'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, TimeSlot.AVAILABLE)

    def test_other_doctor_gets_404(self):
        other = make_doctor(name='Other', email='other@example.com')
        client = APIClient()
        client.force_authenticate(other.user)
        response = client.put(self.url, {'action': 'confirm'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_schedule_list(self):
        response = self.doctor_client.get('/api/appointments/doctor/', {'date': self.day.isoformat()})
        self.assertEqual([a['id'] for a in response.data], [self.appointment.id])

    def test_notes(self):
        response = self.doctor_client.put(f'{self.url}notes/', {'notes': 'Allergic to penicillin'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['notes'], 'Allergic to penicillin')


class TestFollowUpApi(AppointmentApiTestCase):

    def setUp(self):
        super().setUp()
        seen = make_slot(self.doctor, timezone.localdate() - timedelta(days=3), time(9, 0))
        appointment = booking.reserve(seen.id, self.patient.id)
        transitions.confirm(appointment.id)
        self.appointment = transitions.complete(appointment.id)
        self.url = f'/api/appointments/doctor/{self.appointment.id}/follow-up/'

    def test_set_and_send(self):
        follow_up = self.day + timedelta(days=7)
        response = self.doctor_client.put(self.url, {'follow_up_date': follow_up.isoformat()}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['follow_up_date'], follow_up.isoformat())

        response = self.doctor_client.post(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['sent'])

        response = self.doctor_client.post(self.url)
        self.assertFalse(response.data['sent'])
        self.assertEqual(len(mail.outbox), 1)

    def test_past_follow_up_date_is_400(self):
        response = self.doctor_client.put(self.url, {
            'follow_up_date': timezone.localdate().isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_send_without_date_is_400(self):
        response = self.doctor_client.post(self.url)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'not_eligible')

    def test_send_before_visit_is_400(self):
        upcoming = booking.reserve(self.slot.id, self.patient.id)
        transitions.confirm(upcoming.id)
        transitions.complete(upcoming.id, follow_up_date=self.day + timedelta(days=1))

        response = self.doctor_client.post(f'/api/appointments/doctor/{upcoming.id}/follow-up/')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'not_eligible')
        self.assertEqual(mail.outbox, [])

    def test_follow_up_list(self):
        Appointment.objects.filter(pk=self.appointment.pk).update(
            follow_up_date=timezone.localdate() + timedelta(days=3))
        response = self.doctor_client.get('/api/appointments/doctor/follow-ups/', {'upcoming': 'true'})
        self.assertEqual([a['id'] for a in response.data], [self.appointment.id])


class TestNotificationApi(AppointmentApiTestCase):

    def setUp(self):
        super().setUp()
        with self.captureOnCommitCallbacks(execute=True):
            booking.reserve(self.slot.id, self.patient.id)

    def test_list_and_mark_read(self):
        response = self.patient_client.get('/api/appointments/notifications/')
        self.assertEqual(response.data['unread_count'], 1)
        notification_id = response.data['notifications'][0]['id']

        response = self.patient_client.put(f'/api/appointments/notifications/{notification_id}/read/')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['is_read'])

        response = self.patient_client.get('/api/appointments/notifications/', {'unread': 'true'})
        self.assertEqual(response.data['unread_count'], 0)
        self.assertEqual(response.data['notifications'], [])

    def test_cannot_read_someone_elses(self):
        notification = Notification.objects.get(user=self.doctor.user)
        response = self.patient_client.put(f'/api/appointments/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, 404)

    def test_read_all(self):
        response = self.doctor_client.put('/api/appointments/notifications/read-all/')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Notification.objects.filter(user=self.doctor.user, is_read=False).exists())
