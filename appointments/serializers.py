from datetime import datetime

from django.utils import timezone
from rest_framework import serializers

from users.serializers import UserSerializer
from doctors.models import DoctorProfile
from .models import Appointment, Notification, PatientHistory


class DoctorSummarySerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='user.name', read_only=True)

    class Meta:
        model = DoctorProfile
        fields = ['id', 'name', 'specialty', 'clinic_location']


class PatientHistorySerializer(serializers.ModelSerializer):
    prescription = serializers.CharField(source='prescription.content', default=None, read_only=True)

    class Meta:
        model = PatientHistory
        fields = ['id', 'notes', 'prescription', 'created_at']


class AppointmentSerializer(serializers.ModelSerializer):
    """Full read serializer used for GET responses."""
    patient = UserSerializer(read_only=True)
    doctor = DoctorSummarySerializer(read_only=True)

    class Meta:
        model = Appointment
        exclude = ['reminder_sent']
        read_only_fields = ['patient', 'created_at', 'updated_at']


class AppointmentDetailSerializer(AppointmentSerializer):
    history = PatientHistorySerializer(read_only=True, default=None)


# ─────────────────────────────────────────────
# Booking
# ─────────────────────────────────────────────

class SlotBookingSerializer(serializers.Serializer):
    time_slot = serializers.IntegerField()
    appointment_type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, default=Appointment.OFFLINE)
    reason = serializers.CharField(required=False, allow_blank=True)


class DirectBookingSerializer(serializers.Serializer):
    doctor = serializers.IntegerField()
    date = serializers.DateField()
    time = serializers.TimeField()
    duration_minutes = serializers.IntegerField(required=False, min_value=1)
    appointment_type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, default=Appointment.OFFLINE)
    reason = serializers.CharField(required=False, allow_blank=True)

    def validate(self, data):
        start = timezone.make_aware(datetime.combine(data['date'], data['time']))
        if start <= timezone.now():
            raise serializers.ValidationError('Cannot book an appointment in the past.')
        return data


# ─────────────────────────────────────────────
# Transitions
# ─────────────────────────────────────────────

def _future_date(value):
    if value is not None and value <= timezone.localdate():
        raise serializers.ValidationError('Follow-up date must be in the future.')
    return value


class CancelSerializer(serializers.Serializer):
    cancellation_reason = serializers.CharField(required=False, allow_blank=True)


class DoctorActionSerializer(serializers.Serializer):
    """
    Doctor drives the appointment through one action per request:
    confirm | reject | complete | cancel
    """
    CONFIRM = 'confirm'
    REJECT = 'reject'
    COMPLETE = 'complete'
    CANCEL = 'cancel'

    action = serializers.ChoiceField(choices=[CONFIRM, REJECT, COMPLETE, CANCEL])
    reason = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    prescription = serializers.CharField(required=False, allow_blank=True)
    follow_up_date = serializers.DateField(required=False, allow_null=True, validators=[_future_date])


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True)


class FollowUpSerializer(serializers.Serializer):
    follow_up_date = serializers.DateField(allow_null=True, validators=[_future_date])


# ─────────────────────────────────────────────
# Notifications
# ─────────────────────────────────────────────

class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'message', 'appointment', 'is_read', 'created_at']
        read_only_fields = fields
