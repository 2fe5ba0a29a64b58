# channel-backend/notifications/tasks.py
"""
Celery tasks for real-time notification push.
"""
import logging

import requests
from celery import shared_task
from django.conf import settings

from .models import Notification

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def push_realtime_notification(self, notification_id: int):
    """
    POST a stored notification to the real-time gateway.
    """
    url = settings.REALTIME_PUSH_URL
    if not url:
        return False
    try:
        notification = Notification.objects.select_related("recipient").get(id=notification_id)
    except Notification.DoesNotExist:
        return False

    payload = {
        "id": notification.id,
        "recipient_id": notification.recipient_id,
        "recipient_unique_id": notification.recipient.unique_id,
        "event_type": notification.event_type,
        "message": notification.message,
        "created_at": notification.created_at.isoformat(),
    }
    try:
        response = requests.post(url, json=payload, timeout=settings.REALTIME_PUSH_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        logger.warning("Real-time push for notification %s failed: %s", notification_id, exc)
        raise self.retry(exc=exc, countdown=30 * (2 ** self.request.retries))
    return True
