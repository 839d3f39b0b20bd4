from django.core.management.base import BaseCommand

from appointments.followups import run_due_reminders


class Command(BaseCommand):
    help = "Send follow-up reminder e-mails whose follow-up date has arrived. Safe to run from cron."

    def add_arguments(self, parser):
        parser.add_argument('--doctor', type=int, help='Only this doctor (DoctorProfile id)')

    def handle(self, *args, **options):
        counts = run_due_reminders(doctor_id=options.get('doctor'))
        self.stdout.write(self.style.SUCCESS(
            f"Follow-up reminders: {counts['sent']} sent, {counts['skipped']} skipped, {counts['failed']} failed"
        ))
