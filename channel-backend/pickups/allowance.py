# channel-backend/pickups/allowance.py
"""
Additional-pickup allowance.

A marketer may pick up ``DEFAULT_ALLOWANCE`` units at a time, or
``EXTENDED_ALLOWANCE`` while they hold an approved request. The approval is
consumed by the next pickup they create. A rejection starts a cooldown that
both the submission path and the eligibility check honour.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from common.exceptions import CooldownActive, NotFound, RequestAlreadyExists, StateConflict, ValidationFailed
from common.policy import Capability, require

from . import events
from .models import AdditionalPickupRequest, AdditionalRequestStatus

logger = logging.getLogger(__name__)


def _rules():
    return settings.PICKUP_RULES


def get_allowance(marketer):
    approved = AdditionalPickupRequest.objects.filter(
        marketer=marketer, status=AdditionalRequestStatus.APPROVED
    ).exists()
    return _rules()["EXTENDED_ALLOWANCE"] if approved else _rules()["DEFAULT_ALLOWANCE"]


def consume_approval(marketer):
    """Use up the marketer's approval, if any. Call inside the pickup transaction."""
    deleted, _ = AdditionalPickupRequest.objects.filter(
        marketer=marketer, status=AdditionalRequestStatus.APPROVED
    ).delete()
    if deleted:
        logger.info("Consumed additional pickup approval for marketer %s", marketer.pk)
    return bool(deleted)


def _cooldown_until(marketer, now):
    last = (
        AdditionalPickupRequest.objects.filter(
            marketer=marketer,
            status=AdditionalRequestStatus.REJECTED,
            next_request_allowed_at__gt=now,
        )
        .order_by("-next_request_allowed_at")
        .first()
    )
    return last.next_request_allowed_at if last else None


def check_eligibility(marketer, now=None):
    """
    Can the marketer submit a new additional-pickup request right now?
    Returns a dict the API hands straight back to the client.
    """
    now = now or timezone.now()
    open_request = (
        AdditionalPickupRequest.objects.filter(
            marketer=marketer,
            status__in=[AdditionalRequestStatus.PENDING, AdditionalRequestStatus.APPROVED],
        )
        .order_by("-created_at")
        .first()
    )
    result = {
        "eligible": True,
        "reason": "",
        "allowance": get_allowance(marketer),
        "next_request_allowed_at": None,
        "open_request_id": open_request.id if open_request else None,
    }
    if open_request is not None:
        result["eligible"] = False
        result["reason"] = (
            "You already have an approved request"
            if open_request.status == AdditionalRequestStatus.APPROVED
            else "You already have a pending request"
        )
        return result

    until = _cooldown_until(marketer, now)
    if until is not None:
        result["eligible"] = False
        result["reason"] = CooldownActive.default_message
        result["next_request_allowed_at"] = until
    return result


def request_additional_pickup(actor, note=""):
    require(actor, Capability.REQUEST_ADDITIONAL_PICKUP)
    marketer = actor.profile
    now = timezone.now()

    with transaction.atomic():
        until = _cooldown_until(marketer, now)
        if until is not None:
            raise CooldownActive(next_request_allowed_at=until.isoformat())
        try:
            with transaction.atomic():
                req = AdditionalPickupRequest.objects.create(marketer=marketer, note=note or "")
        except IntegrityError:
            raise RequestAlreadyExists()

        logger.info("Marketer %s requested an additional pickup (request %s)", marketer.pk, req.pk)
        transaction.on_commit(lambda: events.additional_pickup_requested(req))
    return req


def review_additional_request(actor, request_id, action):
    """
    Approve or reject a pending request.

    Approval lifts the marketer's allowance for their next pickup. Rejection
    frees the slot for a new request once the cooldown has passed.
    """
    require(actor, Capability.REVIEW_ADDITIONAL_PICKUP)
    if action not in ("approve", "reject"):
        raise ValidationFailed("action must be 'approve' or 'reject'", field="action")
    now = timezone.now()

    with transaction.atomic():
        try:
            req = (
                AdditionalPickupRequest.objects.select_for_update()
                .select_related("marketer")
                .get(pk=request_id)
            )
        except AdditionalPickupRequest.DoesNotExist:
            raise NotFound(f"Request {request_id} not found")
        if req.status != AdditionalRequestStatus.PENDING:
            raise StateConflict(f"Request is already {req.status}", status=req.status)

        req.reviewed_by = actor.profile
        req.reviewed_at = now
        if action == "approve":
            req.status = AdditionalRequestStatus.APPROVED
        else:
            req.status = AdditionalRequestStatus.REJECTED
            hours = _rules()["ADDITIONAL_REQUEST_COOLDOWN_HOURS"]
            req.next_request_allowed_at = now + timedelta(hours=hours) if hours else None
        req.save(update_fields=["status", "reviewed_by", "reviewed_at", "next_request_allowed_at", "updated_at"])

        logger.info("Additional pickup request %s %s by %s", req.pk, req.status, actor.id)
        transaction.on_commit(lambda: events.additional_pickup_reviewed(req))
    return req


def pending_additional_requests():
    return list(
        AdditionalPickupRequest.objects.filter(status=AdditionalRequestStatus.PENDING)
        .select_related("marketer")
        .order_by("created_at", "id")
    )
