from datetime import datetime

from django.db import models
from django.db.models import Q
from django.utils import timezone
from users.models import User
from doctors.models import DoctorProfile, TimeSlot


class AppointmentQuerySet(models.QuerySet):

    def live(self):
        """Appointments that still occupy their window on the calendar."""
        return self.exclude(status=Appointment.CANCELLED)

    def overlapping(self, start, end):
        return self.filter(start_at__lt=end, end_at__gt=start)


class Appointment(models.Model):
    """
    A patient's booking with a doctor, either against a published TimeSlot or
    against a direct (slot-less) window. Status changes only go through the
    conditional updates in `appointments.transitions`. Never hard-deleted.
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (PENDING, 'Pending'),
        (CONFIRMED, 'Confirmed'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    )

    ONLINE = 'online'
    OFFLINE = 'offline'

    TYPE_CHOICES = (
        (ONLINE, 'Online'),
        (OFFLINE, 'Offline'),
    )

    # Parties
    patient = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='patient_appointments')
    doctor = models.ForeignKey(
        DoctorProfile, on_delete=models.CASCADE, related_name='doctor_appointments')
    time_slot = models.ForeignKey(
        TimeSlot, on_delete=models.PROTECT, related_name='appointments', blank=True, null=True)

    # Scheduling: start_at/end_at are the calendar window, date/time the local display copy
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    appointment_date = models.DateField(db_index=True)
    appointment_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField(default=30)
    appointment_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=OFFLINE)

    # Details
    reason = models.TextField(blank=True, null=True,
                              help_text="Patient's reason for visit / chief complaint")
    notes = models.TextField(blank=True, null=True,
                             help_text="Doctor's notes")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING, db_index=True)

    consultation_fee = models.DecimalField(max_digits=8, decimal_places=2, default=0)

    # Cancellation
    cancelled_by = models.CharField(max_length=50, blank=True, null=True)  # 'patient' | 'doctor'
    cancellation_reason = models.TextField(blank=True, null=True)

    # Follow-up
    follow_up_date = models.DateField(blank=True, null=True)
    follow_up_sent = models.BooleanField(default=False)
    follow_up_sent_at = models.DateTimeField(blank=True, null=True)

    reminder_sent = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AppointmentQuerySet.as_manager()

    class Meta:
        db_table = 'appointment'
        ordering = ['-appointment_date', '-appointment_time']
        indexes = [
            models.Index(fields=['appointment_date', 'doctor'], name='appt_date_doctor_idx'),
            models.Index(fields=['patient', 'status'], name='appt_patient_status_idx'),
            models.Index(fields=['doctor', 'start_at'], name='appt_doctor_start_idx'),
            models.Index(fields=['follow_up_date', 'follow_up_sent'], name='appt_follow_up_idx'),
        ]
        constraints = [
            # one live appointment per slot
            models.UniqueConstraint(
                fields=['time_slot'],
                condition=~Q(status='cancelled'),
                name='appt_one_live_per_slot',
            ),
        ]

    def __str__(self):
        return f"{self.patient} → Dr.{self.doctor} | {self.appointment_date} {self.appointment_time}"

    @property
    def local_start(self) -> datetime:
        return timezone.localtime(self.start_at)


class Prescription(models.Model):
    patient = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(
        DoctorProfile, on_delete=models.CASCADE, related_name='prescriptions')
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'prescription'
        ordering = ['-created_at']

    def __str__(self):
        return f"Prescription for {self.patient} by Dr.{self.doctor}"


class PatientHistory(models.Model):
    """Written in the same transaction that completes the appointment."""
    patient = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='medical_history')
    doctor = models.ForeignKey(
        DoctorProfile, on_delete=models.CASCADE, related_name='patient_histories')
    appointment = models.OneToOneField(
        Appointment, on_delete=models.CASCADE, related_name='history')
    prescription = models.OneToOneField(
        Prescription, on_delete=models.SET_NULL, related_name='history', blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'patient_history'
        ordering = ['-created_at']
        verbose_name_plural = 'patient histories'

    def __str__(self):
        return f"{self.patient} | appointment {self.appointment_id}"


class Notification(models.Model):
    NEW_APPOINTMENT = 'new_appointment'
    APPOINTMENT_PENDING = 'appointment_pending'
    APPOINTMENT_CONFIRMED = 'appointment_confirmed'
    APPOINTMENT_REJECTED = 'appointment_rejected'
    APPOINTMENT_CANCELLED = 'appointment_cancelled'
    APPOINTMENT_COMPLETED = 'appointment_completed'
    APPOINTMENT_REMINDER = 'appointment_reminder'
    FOLLOW_UP_REMINDER = 'follow_up_reminder'

    TYPE_CHOICES = (
        (NEW_APPOINTMENT, 'New Appointment'),
        (APPOINTMENT_PENDING, 'Appointment Pending'),
        (APPOINTMENT_CONFIRMED, 'Appointment Confirmed'),
        (APPOINTMENT_REJECTED, 'Appointment Rejected'),
        (APPOINTMENT_CANCELLED, 'Appointment Cancelled'),
        (APPOINTMENT_COMPLETED, 'Appointment Completed'),
        (APPOINTMENT_REMINDER, 'Appointment Reminder'),
        (FOLLOW_UP_REMINDER, 'Follow-up Reminder'),
    )

    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=40, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    appointment = models.ForeignKey(
        Appointment, on_delete=models.SET_NULL, related_name='notifications', blank=True, null=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.user} | {self.type}"
