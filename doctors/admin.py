from datetime import datetime

from django.contrib import admin
from django.utils.html import format_html

from .models import DoctorProfile, DoctorAvailability, BlockedDate, TimeSlot


# ─────────────────────────────────────────────────────────────────────────────
# Inlines shown directly inside the DoctorProfile change page
# ─────────────────────────────────────────────────────────────────────────────

class DoctorAvailabilityInline(admin.TabularInline):
    model = DoctorAvailability
    extra = 1
    fields = ['day', 'start_time', 'end_time', 'slot_duration_minutes', 'is_active']
    ordering = ['day', 'start_time']
    verbose_name = "Weekly Schedule Window"
    verbose_name_plural = "Weekly Schedule (used by schedule-based slot generation)"


class BlockedDateInline(admin.TabularInline):
    model = BlockedDate
    extra = 0
    fields = ['date', 'is_full_day', 'start_time', 'end_time', 'reason']
    ordering = ['-date']


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = [
        'doctor_name', 'contact', 'specialty', 'experience_years',
        'consultation_fee', 'open_slot_count', 'is_verified', 'is_active',
    ]
    list_filter = ['specialty', 'is_verified', 'is_active', 'offers_video_consultation']
    search_fields = ['user__name', 'user__contact', 'registration_number']
    list_editable = ['is_verified', 'is_active']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [DoctorAvailabilityInline, BlockedDateInline]

    @admin.display(description='Doctor')
    def doctor_name(self, obj):
        return f"Dr. {obj.user.name}"

    @admin.display(description='Contact')
    def contact(self, obj):
        return obj.user.contact

    @admin.display(description='Open Slots')
    def open_slot_count(self, obj):
        count = obj.time_slots.filter(status=TimeSlot.AVAILABLE).count()
        if count == 0:
            return format_html('<span style="color:red;">{}</span>', 'No open slots')
        return format_html('<span style="color:green;">{} open</span>', count)


@admin.register(DoctorAvailability)
class DoctorAvailabilityAdmin(admin.ModelAdmin):
    list_display = [
        'doctor', 'day_display', 'start_time', 'end_time',
        'slot_duration_minutes', 'computed_slots', 'is_active',
    ]
    list_filter = ['day', 'is_active']
    search_fields = ['doctor__user__name']
    list_editable = ['is_active']
    ordering = ['doctor', 'day', 'start_time']

    @admin.display(description='Day', ordering='day')
    def day_display(self, obj):
        return obj.day.capitalize()

    @admin.display(description='Slots / window')
    def computed_slots(self, obj):
        """How many slots one generation pass cuts from this window."""
        if obj.slot_duration_minutes and obj.start_time and obj.end_time:
            start = datetime.combine(datetime.today(), obj.start_time)
            end = datetime.combine(datetime.today(), obj.end_time)
            minutes = (end - start).seconds // 60
            if minutes > 0:
                return minutes // obj.slot_duration_minutes
        return '-'


@admin.register(BlockedDate)
class BlockedDateAdmin(admin.ModelAdmin):
    list_display = ['doctor', 'date', 'is_full_day', 'start_time', 'end_time', 'reason']
    list_filter = ['is_full_day', 'date']
    search_fields = ['doctor__user__name', 'reason']
    ordering = ['-date']


@admin.register(TimeSlot)
class TimeSlotAdmin(admin.ModelAdmin):
    list_display = ['id', 'doctor', 'start_time', 'end_time', 'consultation_fee', 'status']
    list_filter = ['status']
    search_fields = ['doctor__user__name']
    date_hierarchy = 'start_time'
    ordering = ['-start_time']
    # status flips go through the booking engine
    readonly_fields = ['status', 'created_at', 'updated_at']
