# ehr_core/audit/management/commands/purge_audit_events.py

from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from ehr_core.audit.models import AuditEvent


class Command(BaseCommand):
    help = "Delete audit events older than the retention window (default 365 days)."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=365)

    def handle(self, *args, **options):
        days = options["days"]
        if days < 1:
            raise CommandError("--days must be at least 1")

        cutoff = timezone.now() - timedelta(days=days)
        deleted = AuditEvent.objects.purge_before(cutoff)

        self.stdout.write(self.style.SUCCESS(f"Audit events purged: {deleted} (older than {days} days)"))
