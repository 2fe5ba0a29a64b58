# channel-backend/accounts/services.py
import logging

from django.db import transaction
from django.utils import timezone

from common.exceptions import NotFound, ValidationFailed
from common.policy import Capability, require
from common.roles import ChannelRole
from notifications.services import notify_many, stakeholders_for

from .models import ChannelUser

logger = logging.getLogger(__name__)


def _get_user_for_update(user_id):
    try:
        return ChannelUser.objects.select_for_update().get(pk=user_id)
    except ChannelUser.DoesNotExist:
        raise NotFound(f"User {user_id} not found")


def lock_account(actor, user_id, reason=""):
    """
    Lock a user out of creating new pickups.

    The user, their admin chain and every MasterAdmin are told about it.
    Locking an already locked account only refreshes the reason.
    """
    require(actor, Capability.LOCK_ACCOUNT)
    with transaction.atomic():
        target = _get_user_for_update(user_id)
        if target.role == ChannelRole.MASTER_ADMIN:
            raise ValidationFailed("MasterAdmin accounts cannot be locked")
        was_locked = target.is_locked
        target.is_locked = True
        target.lock_reason = reason or ""
        if not was_locked:
            target.locked_at = timezone.now()
        target.save(update_fields=["is_locked", "lock_reason", "locked_at", "updated_at"])

        if not was_locked:
            logger.info("Account %s locked by %s", target.unique_id, actor.profile.unique_id)
            message = f"Account {target.display_name} ({target.unique_id}) has been locked."
            if reason:
                message += f" Reason: {reason}"
            recipients = stakeholders_for(target, include_master_admins=True)
            transaction.on_commit(lambda: notify_many(recipients, message, event_type="account_locked"))
    return target


def unlock_account(actor, user_id):
    require(actor, Capability.LOCK_ACCOUNT)
    with transaction.atomic():
        target = _get_user_for_update(user_id)
        if not target.is_locked:
            return target
        target.is_locked = False
        target.locked_at = None
        target.lock_reason = ""
        target.save(update_fields=["is_locked", "lock_reason", "locked_at", "updated_at"])

        logger.info("Account %s unlocked by %s", target.unique_id, actor.profile.unique_id)
        message = f"Account {target.display_name} ({target.unique_id}) has been unlocked."
        recipients = stakeholders_for(target, include_master_admins=True)
        transaction.on_commit(lambda: notify_many(recipients, message, event_type="account_unlocked"))
    return target
