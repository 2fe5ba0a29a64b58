# channel-backend/pickups/deadlines.py
"""
The pickup deadline, in one place.

Order placement checks it lazily and the sweeper eagerly; both go through
``is_overdue`` / ``overdue_filter`` so they can never disagree about the
boundary instant.
"""
from datetime import timedelta

from django.conf import settings
from django.db.models import Q
from django.utils import timezone


def deadline_hours():
    return settings.PICKUP_RULES["DEADLINE_HOURS"]


def deadline_from(start):
    return start + timedelta(hours=deadline_hours())


def is_overdue(deadline, now=None):
    now = now or timezone.now()
    return deadline <= now


def overdue_filter(now=None):
    now = now or timezone.now()
    return Q(deadline__lte=now)
