# ehr_core/notifications/management/commands/purge_notifications.py

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from ehr_core.notifications.selectors import stale


class Command(BaseCommand):
    help = "Delete expired notifications and those older than the retention window."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=settings.NOTIFICATION_DEFAULT_TTL_DAYS)

    def handle(self, *args, **options):
        days = options["days"]
        if days < 1:
            raise CommandError("--days must be at least 1")

        deleted, _ = stale(older_than_days=days).delete()

        self.stdout.write(self.style.SUCCESS(f"Notifications purged: {deleted} (older than {days} days or expired)"))
