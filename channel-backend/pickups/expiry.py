# channel-backend/pickups/expiry.py
"""
Expiration sweeper.

Moves overdue ``pending`` / ``pending_order`` pickups to ``return_pending``.
Each batch commits on its own, and notifications go out only after that
commit, one pickup at a time, so a failing recipient can neither undo a
transition nor stop the rest of the sweep.
"""
import logging
from dataclasses import dataclass, field

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from orders.services import cancel_orders_for_expired_pickup

from . import events
from .deadlines import overdue_filter
from .models import Pickup, PickupStatus
from .state_machine import Event, next_status, sources_for

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    expired: list = field(default_factory=list)
    cancelled_orders: list = field(default_factory=list)
    notification_failures: int = 0
    batches: int = 0


def expire_pickup(pickup, now):
    """
    Expire one pickup if it is still overdue and in an expirable status.

    The status and deadline are re-checked in the UPDATE itself so a pickup
    that was sold or returned after it was read is left alone.
    Returns True when this call moved the pickup.
    """
    target = next_status(pickup.status, Event.EXPIRE)
    updated = (
        Pickup.objects.filter(pk=pickup.pk, status=pickup.status)
        .filter(overdue_filter(now))
        .update(status=target, return_requested_at=now, expired_at=now, updated_at=now)
    )
    if not updated:
        return False
    pickup.status = target
    pickup.return_requested_at = now
    pickup.expired_at = now
    return True


def sweep_expired(now=None, batch_size=None):
    now = now or timezone.now()
    batch_size = batch_size or settings.PICKUP_RULES["SWEEP_BATCH_SIZE"]
    result = SweepResult()
    last_id = 0

    while True:
        expired_in_batch = []
        with transaction.atomic():
            batch = list(
                Pickup.objects.select_for_update(skip_locked=True, of=("self",))
                .select_related("marketer", "product")
                .filter(status__in=sources_for(Event.EXPIRE), id__gt=last_id)
                .filter(overdue_filter(now))
                .order_by("id")[:batch_size]
            )
            if not batch:
                break
            result.batches += 1
            last_id = batch[-1].id

            for pickup in batch:
                was_waiting_on_order = pickup.status == PickupStatus.PENDING_ORDER
                if not expire_pickup(pickup, now):
                    continue
                cancelled = []
                if was_waiting_on_order:
                    cancelled = cancel_orders_for_expired_pickup(pickup, now)
                    result.cancelled_orders.extend(cancelled)
                expired_in_batch.append((pickup, cancelled))
                logger.info(
                    "Pickup %s (marketer %s) expired; deadline was %s",
                    pickup.pk, pickup.marketer_id, pickup.deadline.isoformat(),
                )

        for pickup, cancelled in expired_in_batch:
            result.expired.append(pickup.pk)
            try:
                events.pickup_expired(pickup, cancelled)
            except Exception:
                result.notification_failures += 1
                logger.exception("Failed to send expiry notifications for pickup %s", pickup.pk)

        if len(batch) < batch_size:
            break

    if result.expired:
        logger.info("Sweep expired %d pickup(s) in %d batch(es)", len(result.expired), result.batches)
    return result
