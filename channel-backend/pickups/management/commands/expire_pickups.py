"""
Management command to run the pickup expiration sweep once.

Useful where Celery beat is not running (cron, one-off maintenance).

Usage:
    python manage.py expire_pickups
    python manage.py expire_pickups --batch-size 50
    python manage.py expire_pickups --dry-run
"""

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from pickups.deadlines import overdue_filter
from pickups.expiry import sweep_expired
from pickups.models import Pickup
from pickups.state_machine import Event, sources_for


class Command(BaseCommand):
    help = "Move overdue pending pickups to return_pending"

    def add_arguments(self, parser):
        parser.add_argument(
            "--batch-size",
            type=int,
            default=settings.PICKUP_RULES["SWEEP_BATCH_SIZE"],
            help="Pickups per transaction",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only list the pickups that would expire",
        )

    def handle(self, *args, **options):
        now = timezone.now()
        if options["dry_run"]:
            overdue = (
                Pickup.objects.filter(status__in=sources_for(Event.EXPIRE))
                .filter(overdue_filter(now))
                .order_by("id")
            )
            for p in overdue:
                self.stdout.write(f"  pickup {p.id} marketer={p.marketer_id} status={p.status} deadline={p.deadline:%Y-%m-%d %H:%M}")
            self.stdout.write(f"{overdue.count()} pickup(s) would expire")
            return

        result = sweep_expired(now=now, batch_size=options["batch_size"])
        self.stdout.write(self.style.SUCCESS(
            f"Expired {len(result.expired)} pickup(s), cancelled {len(result.cancelled_orders)} order(s)"
        ))
        if result.notification_failures:
            self.stdout.write(self.style.WARNING(
                f"{result.notification_failures} pickup(s) had notification failures (see logs)"
            ))
