# channel-backend/notifications/services.py
"""
Notification fan-out.

Callers hand over (recipient, message) pairs. Each message is stored as a
``Notification`` row and, when a push gateway is configured, handed to a
Celery task for real-time delivery. A failure for one recipient is logged and
never stops delivery to the others or the caller's own work.
"""
import logging

from django.conf import settings
from django.utils import timezone

from common.exceptions import NotFound
from common.roles import ChannelRole

from .models import Notification

logger = logging.getLogger(__name__)


def master_admins():
    from accounts.models import ChannelUser
    return list(ChannelUser.objects.filter(role=ChannelRole.MASTER_ADMIN).order_by("id"))


def stakeholders_for(user, include_master_admins=False):
    """
    Everyone who hears about a user's stock: the user, their admin and super
    admin, and optionally all MasterAdmins.
    """
    recipients = list(user.stakeholder_chain())
    if include_master_admins:
        recipients.extend(master_admins())
    return dedupe(recipients)


def dedupe(recipients):
    seen, out = set(), []
    for r in recipients:
        if r is None or r.pk in seen:
            continue
        seen.add(r.pk)
        out.append(r)
    return out


def notify(recipient, message, event_type="", push=False):
    notification = Notification.objects.create(
        recipient=recipient,
        message=message,
        event_type=event_type,
    )
    if push:
        enqueue_push(notification)
    return notification


def notify_many(recipients, message, event_type="", push_to=None):
    """
    Deliver ``message`` to every recipient.

    ``push_to`` is an optional set of recipient ids that also get a real-time
    push. Returns the notifications that were stored.
    """
    push_to = push_to or set()
    delivered = []
    for recipient in dedupe(recipients):
        try:
            delivered.append(
                notify(recipient, message, event_type=event_type, push=recipient.pk in push_to)
            )
        except Exception:
            logger.exception("Failed to notify user %s (%s)", recipient.pk, event_type)
    return delivered


def enqueue_push(notification):
    if not settings.REALTIME_PUSH_URL:
        return
    from .tasks import push_realtime_notification
    try:
        push_realtime_notification.delay(notification.id)
    except Exception:
        logger.exception("Could not queue real-time push for notification %s", notification.id)


def mark_read(actor, notification_id):
    try:
        notification = Notification.objects.get(pk=notification_id, recipient_id=actor.id)
    except Notification.DoesNotExist:
        raise NotFound(f"Notification {notification_id} not found")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=["is_read", "read_at"])
    return notification
