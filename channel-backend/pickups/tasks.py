# channel-backend/pickups/tasks.py
"""
Celery tasks for the pickup lifecycle. Scheduled by CELERY_BEAT_SCHEDULE.
"""
from celery import shared_task

from .expiry import sweep_expired


@shared_task(bind=True, max_retries=3)
def expire_overdue_pickups(self):
    """
    Periodic sweep of overdue pickups. Returns the ids that were expired.
    """
    try:
        result = sweep_expired()
    except Exception as exc:
        # Retry on unexpected errors (e.g. database unavailable)
        raise self.retry(exc=exc, countdown=30)
    return result.expired
