# channel-backend/pickups/services.py
"""
Stock pickup lifecycle: creation, returns and transfers.

Every operation checks the caller's capability first, runs as one
transaction, moves the pickup through ``state_machine.apply`` and queues its
notifications for after commit.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from accounts.models import ChannelUser
from catalog.models import Product
from common.exceptions import (
    AccountLocked,
    ActiveStockExists,
    AllowanceExceeded,
    LocationMismatch,
    NotFound,
    TargetIneligible,
    ValidationFailed,
)
from common.policy import Capability, require, require_owner
from common.roles import ChannelRole, FIELD_ROLES
from inventory import allocator

from . import events
from .allowance import consume_approval, get_allowance, pending_additional_requests
from .deadlines import deadline_from
from .models import Pickup, PickupStatus
from .state_machine import Event, apply, next_status

logger = logging.getLogger(__name__)


def _lock_pickup(pickup_id):
    try:
        return (
            Pickup.objects.select_for_update(of=("self",))
            .select_related("marketer", "product", "transfer_to")
            .get(pk=pickup_id)
        )
    except Pickup.DoesNotExist:
        raise NotFound(f"Stock pickup {pickup_id} not found")


def _lock_profile(user_id):
    try:
        return ChannelUser.objects.select_for_update().get(pk=user_id)
    except ChannelUser.DoesNotExist:
        raise NotFound(f"User {user_id} not found")


def active_pickup_for(marketer_id):
    return Pickup.objects.active().filter(marketer_id=marketer_id).first()


def _insert_pickup(**fields):
    """
    Insert a pickup under a savepoint. The partial unique constraint is the
    final word on one-active-pickup-per-marketer.
    """
    try:
        with transaction.atomic():
            return Pickup.objects.create(**fields)
    except IntegrityError:
        active = active_pickup_for(fields["marketer"].pk)
        raise ActiveStockExists(active.status if active else None)


def create_pickup(actor, product_id, quantity=1):
    """
    Reserve ``quantity`` units of a product to the calling marketer.

    Args:
        actor: Marketer, Admin or SuperAdmin picking up stock
        product_id: Product ID of a same-location dealer
        quantity: Units to pick up, at most the caller's allowance

    Returns:
        The new Pickup in ``pending`` status

    Raises:
        AccountLocked: Caller's account is locked
        ActiveStockExists: Caller already holds an active pickup
        AllowanceExceeded: ``quantity`` is above the caller's allowance
        NotFound: Product does not exist or is inactive
        LocationMismatch: Product's dealer is in another location
        InsufficientStock: Not enough available units
    """
    require(actor, Capability.CREATE_PICKUP)
    if quantity <= 0:
        raise ValidationFailed("quantity must be greater than 0", field="quantity")

    now = timezone.now()
    with transaction.atomic():
        # serialises pickups of the same marketer
        marketer = _lock_profile(actor.id)
        if marketer.is_locked:
            raise AccountLocked()

        active = active_pickup_for(marketer.pk)
        if active is not None:
            raise ActiveStockExists(active.status, pickup_id=active.pk)

        allowance = get_allowance(marketer)
        if quantity > allowance:
            raise AllowanceExceeded(allowance=allowance, requested=quantity)

        try:
            product = Product.objects.select_related("dealer").get(pk=product_id, is_active=True)
        except Product.DoesNotExist:
            raise NotFound(f"Product {product_id} not found")
        if product.dealer.location != marketer.location:
            raise LocationMismatch("You can only pick up stock from dealers in your location")

        pickup = _insert_pickup(
            marketer=marketer,
            product=product,
            quantity=quantity,
            reserved_count=quantity,
            pickup_date=now,
            deadline=deadline_from(now),
            status=PickupStatus.PENDING,
        )
        allocator.reserve_units(pickup, quantity, created_by=marketer)
        consume_approval(marketer)

        logger.info(
            "Pickup %s created: marketer %s, product %s x%d",
            pickup.pk, marketer.pk, product.pk, quantity,
        )
        transaction.on_commit(lambda: events.pickup_created(pickup))
    return pickup


def create_bulk_pickup(actor, product_id, quantity):
    """Multi-unit pickup; only useful once an additional pickup has been approved."""
    return create_pickup(actor, product_id, quantity=quantity)


def request_return(actor, pickup_id):
    require(actor, Capability.REQUEST_RETURN)
    with transaction.atomic():
        pickup = _lock_pickup(pickup_id)
        require_owner(actor, pickup.marketer_id)
        apply(pickup, Event.REQUEST_RETURN, return_requested_at=timezone.now())
        transaction.on_commit(lambda: events.return_requested(pickup))
    return pickup


def confirm_return(actor, pickup_id):
    """
    Accept a pending return: units go back to available and the product's
    restock counter grows by the pickup quantity.
    """
    require(actor, Capability.CONFIRM_RETURN)
    with transaction.atomic():
        pickup = _lock_pickup(pickup_id)
        apply(
            pickup,
            Event.CONFIRM_RETURN,
            returned_at=timezone.now(),
            reviewed_by=actor.profile,
        )
        allocator.release_units(pickup, created_by=actor.profile, note="Return confirmed")
        Product.objects.filter(pk=pickup.product_id).update(
            restocked_units=F("restocked_units") + pickup.quantity
        )
        transaction.on_commit(lambda: events.return_confirmed(pickup))
    return pickup


def _check_transfer_target(target, owner):
    if target.pk == owner.pk:
        raise TargetIneligible("You cannot transfer stock to yourself")
    if target.role not in FIELD_ROLES:
        raise TargetIneligible(f"{target.role} accounts cannot receive stock")
    if target.is_locked:
        raise TargetIneligible("Selected user's account is locked")
    if target.location != owner.location:
        raise LocationMismatch("You can only transfer stock to users in your location")
    if active_pickup_for(target.pk) is not None:
        raise TargetIneligible("Selected user already has active stock")


def request_transfer(actor, pickup_id, target_id, reason=""):
    """
    Ask for a pending pickup to be handed to another field user in the same
    location who holds no active stock.
    """
    require(actor, Capability.REQUEST_TRANSFER)
    with transaction.atomic():
        pickup = _lock_pickup(pickup_id)
        require_owner(actor, pickup.marketer_id)
        next_status(pickup.status, Event.REQUEST_TRANSFER)

        try:
            target = ChannelUser.objects.get(pk=target_id)
        except ChannelUser.DoesNotExist:
            raise NotFound(f"User {target_id} not found")
        _check_transfer_target(target, pickup.marketer)

        apply(
            pickup,
            Event.REQUEST_TRANSFER,
            transfer_to=target,
            transfer_reason=reason or "",
            transfer_requested_at=timezone.now(),
        )
        transaction.on_commit(lambda: events.transfer_requested(pickup))
    return pickup


def review_transfer(actor, pickup_id, action):
    """
    Approve or reject a pending transfer.

    Approval makes the target the pickup's marketer and closes it as
    ``transfer_approved``; the reserved units move to a fresh ``pending``
    pickup for the target with a new deadline. Rejection reopens the pickup
    to ``pending`` for its current marketer.

    Returns:
        (pickup, successor) where successor is None on rejection
    """
    require(actor, Capability.REVIEW_TRANSFER)
    if action not in ("approve", "reject"):
        raise ValidationFailed("action must be 'approve' or 'reject'", field="action")

    now = timezone.now()
    with transaction.atomic():
        pickup = _lock_pickup(pickup_id)
        original_owner = pickup.marketer
        target = pickup.transfer_to

        if action == "reject":
            apply(
                pickup,
                Event.REJECT_TRANSFER,
                transfer_to=None,
                transfer_reason="",
                transfer_reviewed_at=now,
                reviewed_by=actor.profile,
            )
            transaction.on_commit(
                lambda: events.transfer_reviewed(pickup, False, original_owner, target)
            )
            return pickup, None

        next_status(pickup.status, Event.APPROVE_TRANSFER)
        if target is None:
            raise ValidationFailed("Transfer has no target")
        # the target may have been locked or moved since the request
        target = _lock_profile(target.pk)
        _check_transfer_target(target, original_owner)

        apply(
            pickup,
            Event.APPROVE_TRANSFER,
            marketer=target,
            previous_marketer=original_owner,
            transfer_reviewed_at=now,
            reviewed_by=actor.profile,
        )
        successor = _insert_pickup(
            marketer=target,
            product=pickup.product,
            quantity=pickup.quantity,
            reserved_count=0,
            pickup_date=now,
            deadline=deadline_from(now),
            status=PickupStatus.PENDING,
            transferred_from=pickup,
        )
        moved = allocator.hand_off_units(pickup, successor, created_by=actor.profile)
        successor.reserved_count = len(moved)
        successor.save(update_fields=["reserved_count", "updated_at"])

        logger.info(
            "Transfer of pickup %s approved: %s -> %s (successor %s)",
            pickup.pk, original_owner.pk, target.pk, successor.pk,
        )
        transaction.on_commit(
            lambda: events.transfer_reviewed(pickup, True, original_owner, target)
        )
    return pickup, successor


def pickups_for(actor, status=None):
    """
    Pickups visible to the caller: every pickup for a MasterAdmin, the
    caller's own plus those of their marketers for an Admin, and the whole
    hierarchy below a SuperAdmin.
    """
    qs = Pickup.objects.select_related("marketer", "product", "product__dealer", "transfer_to")
    if actor.role == ChannelRole.ADMIN:
        qs = qs.filter(Q(marketer_id=actor.id) | Q(marketer__admin_id=actor.id))
    elif actor.role == ChannelRole.SUPER_ADMIN:
        qs = qs.filter(
            Q(marketer_id=actor.id)
            | Q(marketer__super_admin_id=actor.id)
            | Q(marketer__admin__super_admin_id=actor.id)
        ).distinct()
    elif actor.role != ChannelRole.MASTER_ADMIN:
        qs = qs.filter(marketer_id=actor.id)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("-created_at", "-id")


def pending_confirmations():
    """Work queue of a MasterAdmin: returns, transfers and additional pickup requests awaiting review."""
    base = Pickup.objects.select_related("marketer", "product", "transfer_to").order_by("created_at")
    return {
        "returns": list(base.filter(status=PickupStatus.RETURN_PENDING)),
        "transfers": list(base.filter(status=PickupStatus.TRANSFER_PENDING)),
        "additional_requests": pending_additional_requests(),
    }
