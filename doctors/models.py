from datetime import datetime

from django.db import models
from django.utils import timezone
from users.models import User


SPECIALTY_CHOICES = (
    ('general_medicine', 'General Medicine'),
    ('cardiology', 'Cardiology'),
    ('dermatology', 'Dermatology'),
    ('neurology', 'Neurology'),
    ('orthopedics', 'Orthopedics'),
    ('pediatrics', 'Pediatrics'),
    ('gynecology', 'Gynecology'),
    ('ophthalmology', 'Ophthalmology'),
    ('ent', 'ENT'),
    ('psychiatry', 'Psychiatry'),
    ('dentistry', 'Dentistry'),
    ('other', 'Other'),
)

DAY_CHOICES = (
    ('monday', 'Monday'),
    ('tuesday', 'Tuesday'),
    ('wednesday', 'Wednesday'),
    ('thursday', 'Thursday'),
    ('friday', 'Friday'),
    ('saturday', 'Saturday'),
    ('sunday', 'Sunday'),
)


class DoctorProfile(models.Model):
    """
    Professional profile for a doctor.
    One-to-one with the User model (role = IS_DOCTOR). The row doubles as the
    per-doctor lock taken while a new interval is placed on the calendar.
    """
    user = models.OneToOneField(
        User, on_delete=models.CASCADE, related_name='doctor_profile')

    # Professional info
    specialty = models.CharField(max_length=100, choices=SPECIALTY_CHOICES, default='general_medicine')
    qualification = models.CharField(max_length=200, blank=True, null=True)
    registration_number = models.CharField(max_length=100, blank=True, null=True)
    experience_years = models.PositiveIntegerField(default=0)
    biography = models.TextField(blank=True, null=True)
    clinic_location = models.CharField(max_length=255, blank=True, null=True)

    # Default fee for generated slots and direct bookings
    consultation_fee = models.DecimalField(max_digits=8, decimal_places=2, default=0)

    offers_video_consultation = models.BooleanField(default=False)

    is_verified = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'doctor_profile'

    def __str__(self):
        return f"Dr. {self.user.name} ({self.specialty})"


class DoctorAvailability(models.Model):
    """
    Weekly recurring working window. Used as the recurrence pattern when
    slots are generated from the doctor's schedule.
    """
    doctor = models.ForeignKey(
        DoctorProfile, on_delete=models.CASCADE, related_name='availability')
    day = models.CharField(max_length=20, choices=DAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()
    slot_duration_minutes = models.PositiveIntegerField(
        default=30, help_text="Duration of each appointment slot in minutes")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'doctor_availability'
        unique_together = ('doctor', 'day', 'start_time')
        ordering = ['day', 'start_time']

    def __str__(self):
        return f"{self.doctor} | {self.day} {self.start_time}–{self.end_time}"


class BlockedDate(models.Model):
    """
    A day (or part of a day) on which the doctor accepts no new slots or bookings.
    Existing bookings on the day are left alone.
    """
    doctor = models.ForeignKey(
        DoctorProfile, on_delete=models.CASCADE, related_name='blocked_dates')
    date = models.DateField()
    is_full_day = models.BooleanField(default=True)
    # Only set for partial blocks
    start_time = models.TimeField(blank=True, null=True)
    end_time = models.TimeField(blank=True, null=True)
    reason = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'blocked_date'
        ordering = ['date', 'start_time']
        indexes = [
            models.Index(fields=['doctor', 'date'], name='blocked_doctor_date_idx'),
        ]

    def __str__(self):
        if self.is_full_day:
            return f"{self.doctor} | {self.date} (full day)"
        return f"{self.doctor} | {self.date} {self.start_time}–{self.end_time}"

    def intersects(self, start_time, end_time):
        """Whether the wall-clock window [start_time, end_time) on `self.date` hits this block."""
        if self.is_full_day:
            return True
        return start_time < self.end_time and end_time > self.start_time


class TimeSlotQuerySet(models.QuerySet):

    def active(self):
        return self.exclude(status=TimeSlot.CANCELLED)

    def overlapping(self, start, end):
        return self.filter(start_time__lt=end, end_time__gt=start)


class TimeSlot(models.Model):
    """
    A bookable interval published by a doctor.
    AVAILABLE ↔ BOOKED is only ever flipped by conditional updates in the
    booking and appointment-transition code.
    """
    AVAILABLE = 'available'
    BOOKED = 'booked'
    BLOCKED = 'blocked'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (AVAILABLE, 'Available'),
        (BOOKED, 'Booked'),
        (BLOCKED, 'Blocked'),
        (CANCELLED, 'Cancelled'),
    )

    doctor = models.ForeignKey(
        DoctorProfile, on_delete=models.CASCADE, related_name='time_slots')
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    consultation_fee = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=AVAILABLE, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TimeSlotQuerySet.as_manager()

    class Meta:
        db_table = 'time_slot'
        ordering = ['start_time']
        indexes = [
            models.Index(fields=['doctor', 'start_time'], name='slot_doctor_start_idx'),
        ]

    def __str__(self):
        return f"{self.doctor} | {self.start_time:%Y-%m-%d %H:%M}–{self.end_time:%H:%M} [{self.status}]"

    @property
    def local_start(self) -> datetime:
        return timezone.localtime(self.start_time)

    @property
    def local_end(self) -> datetime:
        return timezone.localtime(self.end_time)
