# channel-backend/pickups/state_machine.py
"""
Pickup lifecycle table.

Every entry point moves a pickup through ``apply``; a (status, event) pair
that is not in ``TRANSITIONS`` is rejected with ``IllegalTransition``.
The write is a conditional UPDATE on the status the caller read, so a
concurrent transition that got there first makes this one fail instead of
overwriting it.
"""
import logging

from django.utils import timezone

from common.exceptions import IllegalTransition, StateConflict

from .models import Pickup, PickupStatus as S

logger = logging.getLogger(__name__)


class Event:
    PLACE_ORDER = "place_order"
    CANCEL_ORDER = "cancel_order"
    CONFIRM_ORDER = "confirm_order"
    REQUEST_RETURN = "request_return"
    CONFIRM_RETURN = "confirm_return"
    REQUEST_TRANSFER = "request_transfer"
    APPROVE_TRANSFER = "approve_transfer"
    REJECT_TRANSFER = "reject_transfer"
    EXPIRE = "expire"


TRANSITIONS = {
    (S.PENDING, Event.PLACE_ORDER): S.PENDING_ORDER,
    (S.PENDING_ORDER, Event.CANCEL_ORDER): S.PENDING,
    (S.PENDING, Event.CONFIRM_ORDER): S.SOLD,
    (S.PENDING_ORDER, Event.CONFIRM_ORDER): S.SOLD,
    (S.PENDING, Event.REQUEST_RETURN): S.RETURN_PENDING,
    (S.RETURN_PENDING, Event.CONFIRM_RETURN): S.RETURNED,
    (S.PENDING, Event.REQUEST_TRANSFER): S.TRANSFER_PENDING,
    (S.TRANSFER_PENDING, Event.APPROVE_TRANSFER): S.TRANSFER_APPROVED,
    (S.TRANSFER_PENDING, Event.REJECT_TRANSFER): S.PENDING,
    (S.PENDING, Event.EXPIRE): S.RETURN_PENDING,
    (S.PENDING_ORDER, Event.EXPIRE): S.RETURN_PENDING,
}


def next_status(current, event):
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise IllegalTransition(current, event)


def can_apply(current, event):
    return (current, event) in TRANSITIONS


def sources_for(event):
    """Statuses from which ``event`` is legal."""
    return [status for (status, e) in TRANSITIONS if e == event]


def apply(pickup, event, **fields):
    """
    Move ``pickup`` along ``event`` and persist ``fields`` with it.

    Raises:
        IllegalTransition: The event is not allowed from the pickup's status
        StateConflict: The row changed status since it was read
    """
    source = pickup.status
    target = next_status(source, event)
    fields["updated_at"] = timezone.now()
    updated = Pickup.objects.filter(pk=pickup.pk, status=source).update(status=target, **fields)
    if not updated:
        raise StateConflict(
            "This stock was updated by someone else. Refresh and try again",
            pickup_id=pickup.pk,
        )
    pickup.status = target
    for name, value in fields.items():
        setattr(pickup, name, value)
    logger.info(
        "Pickup %s (marketer %s): %s -> %s on %s",
        pickup.pk, pickup.marketer_id, source, target, event,
    )
    return pickup
