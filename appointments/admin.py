from django.contrib import admin
from .models import Appointment, Notification, PatientHistory, Prescription


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'patient', 'doctor', 'appointment_date', 'appointment_time',
        'appointment_type', 'status', 'consultation_fee', 'follow_up_date', 'follow_up_sent',
    ]
    list_filter = ['status', 'appointment_type', 'follow_up_sent', 'appointment_date']
    search_fields = ['patient__name', 'patient__contact', 'doctor__user__name']
    ordering = ['-appointment_date', '-appointment_time']
    # status and reminder flags only change through the scheduling engine
    readonly_fields = [
        'status', 'time_slot', 'start_at', 'end_at', 'follow_up_sent', 'follow_up_sent_at',
        'reminder_sent', 'created_at', 'updated_at',
    ]


@admin.register(PatientHistory)
class PatientHistoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'patient', 'doctor', 'appointment', 'prescription', 'created_at']
    search_fields = ['patient__name', 'doctor__user__name']
    readonly_fields = ['created_at']


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ['id', 'patient', 'doctor', 'created_at']
    search_fields = ['patient__name', 'doctor__user__name']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'type', 'title', 'is_read', 'created_at']
    list_filter = ['type', 'is_read']
    search_fields = ['user__name', 'title']
