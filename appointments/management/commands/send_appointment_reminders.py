from django.core.management.base import BaseCommand

from appointments.followups import send_upcoming_reminders


class Command(BaseCommand):
    help = "Remind patients and doctors of appointments starting within the next 24 hours. Run every 15 minutes."

    def handle(self, *args, **options):
        counts = send_upcoming_reminders()
        self.stdout.write(self.style.SUCCESS(
            f"Appointment reminders: {counts['sent']} sent, {counts['skipped']} skipped, {counts['failed']} failed"
        ))
