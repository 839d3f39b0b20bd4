"""Reminder e-mails. Both helpers raise on transport failure; callers decide what that means."""
from django.conf import settings
from django.core.mail import send_mail


def send_follow_up_reminder(patient_name, patient_email, doctor_name, follow_up_date,
                            previous_appointment_date, notes=None):
    body = (
        f"Dear {patient_name},\n\n"
        f"This is a reminder that Dr. {doctor_name} recommended a follow-up visit on "
        f"{follow_up_date:%A, %d %B %Y}.\n"
        f"Your previous appointment was on {previous_appointment_date:%d %B %Y}.\n"
    )
    if notes:
        body += f"\nNotes from your doctor:\n{notes}\n"
    body += "\nPlease book a slot at your convenience.\n\nCareSlot"

    send_mail(
        subject=f'Follow-up reminder from Dr. {doctor_name}',
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[patient_email],
        fail_silently=False,
    )


def send_appointment_reminder(patient_email, patient_name, doctor_email, doctor_name,
                              appointment_date, appointment_time, clinic_location, online):
    when = f"{appointment_date:%d %B %Y} at {appointment_time:%H:%M}"
    where = 'Online consultation' if online else (clinic_location or 'Clinic')

    send_mail(
        subject='Appointment Reminder - CareSlot',
        message=(
            f"Dear {patient_name},\n\n"
            f"You have an appointment with Dr. {doctor_name} on {when}.\n"
            f"Location: {where}\n\nCareSlot"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[patient_email],
        fail_silently=False,
    )
    send_mail(
        subject='Upcoming Appointment - CareSlot',
        message=(
            f"Dr. {doctor_name},\n\n"
            f"You have an appointment with {patient_name} on {when}.\n"
            f"Location: {where}\n\nCareSlot"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[doctor_email],
        fail_silently=False,
    )
