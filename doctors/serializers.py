from django.conf import settings
from rest_framework import serializers

from users.serializers import UserSerializer
from .models import DoctorProfile, DoctorAvailability, BlockedDate, TimeSlot


class DoctorAvailabilitySerializer(serializers.ModelSerializer):
    class Meta:
        model = DoctorAvailability
        fields = '__all__'
        read_only_fields = ['doctor']

    def validate_slot_duration_minutes(self, value):
        limit = settings.SCHEDULING['MAX_SLOT_DURATION_MINUTES']
        if not 1 <= value <= limit:
            raise serializers.ValidationError(f'Must be between 1 and {limit} minutes.')
        return value

    def validate(self, attrs):
        start = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end = attrs.get('end_time', getattr(self.instance, 'end_time', None))
        if start and end and start >= end:
            raise serializers.ValidationError({'end_time': 'End time must be after start time.'})
        return attrs


class DoctorProfileSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    availability = DoctorAvailabilitySerializer(many=True, read_only=True)

    class Meta:
        model = DoctorProfile
        fields = '__all__'
        read_only_fields = ['user', 'is_verified', 'created_at', 'updated_at']


class DoctorProfileWriteSerializer(serializers.ModelSerializer):
    """Used by a doctor to update their own professional details."""
    class Meta:
        model = DoctorProfile
        exclude = ['user', 'is_verified', 'created_at', 'updated_at']


# ─────────────────────────────────────────────
# Time slots
# ─────────────────────────────────────────────

class TimeSlotSerializer(serializers.ModelSerializer):
    class Meta:
        model = TimeSlot
        fields = ['id', 'doctor', 'start_time', 'end_time', 'consultation_fee', 'status', 'created_at', 'updated_at']
        read_only_fields = fields


class TimeSlotCreateSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    consultation_fee = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, min_value=0)


class TimeSlotUpdateSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField(required=False)
    end_time = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(
        choices=[TimeSlot.AVAILABLE, TimeSlot.BLOCKED, TimeSlot.CANCELLED], required=False)
    consultation_fee = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, min_value=0)


class DailyWindowSerializer(serializers.Serializer):
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()

    def validate(self, attrs):
        if attrs['start_time'] >= attrs['end_time']:
            raise serializers.ValidationError('Window start time must be before its end time.')
        return attrs


class SlotGenerationSerializer(serializers.Serializer):
    """
    Either explicit `daily_windows` + `slot_duration_minutes`, or
    `use_schedule=true` to cut the doctor's weekly availability.
    """
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    use_schedule = serializers.BooleanField(default=False)
    daily_windows = DailyWindowSerializer(many=True, required=False)
    slot_duration_minutes = serializers.IntegerField(required=False, min_value=1)
    consultation_fee = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, min_value=0)

    def validate(self, attrs):
        if attrs['end_date'] < attrs['start_date']:
            raise serializers.ValidationError({'end_date': 'End date must be on or after start date.'})
        if not attrs['use_schedule']:
            if not attrs.get('daily_windows'):
                raise serializers.ValidationError({'daily_windows': 'At least one daily window is required.'})
            if not attrs.get('slot_duration_minutes'):
                raise serializers.ValidationError({'slot_duration_minutes': 'This field is required.'})
        return attrs


class SkippedSlotSerializer(serializers.Serializer):
    date = serializers.DateField()
    start_time = serializers.CharField()
    end_time = serializers.CharField()
    reason = serializers.CharField()


class GenerationResultSerializer(serializers.Serializer):
    created = serializers.ListField(child=serializers.IntegerField())
    skipped = SkippedSlotSerializer(many=True)


# ─────────────────────────────────────────────
# Blocked dates
# ─────────────────────────────────────────────

class BlockedDateSerializer(serializers.ModelSerializer):
    class Meta:
        model = BlockedDate
        fields = ['id', 'doctor', 'date', 'is_full_day', 'start_time', 'end_time', 'reason', 'created_at']
        read_only_fields = ['id', 'doctor', 'is_full_day', 'created_at']

    def validate(self, attrs):
        start = attrs.get('start_time')
        end = attrs.get('end_time')
        if (start is None) != (end is None):
            raise serializers.ValidationError('Provide both start_time and end_time for a partial block, or neither.')
        if start is not None and start >= end:
            raise serializers.ValidationError({'end_time': 'End time must be after start time.'})
        return attrs
