# channel-backend/orders/services.py
"""
Order placement, confirmation and cancellation.

Placing an order never sells anything: the pickup moves to
``pending_order`` and its units stay reserved. Only a MasterAdmin
confirmation sells the units and credits commission.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from commissions.ledger import get_ledger
from common.exceptions import (
    InsufficientQuantity,
    NoActivePickup,
    NotFound,
    NotPending,
    ValidationFailed,
)
from common.policy import Capability, require
from common.roles import ChannelRole
from inventory import allocator
from pickups import events
from pickups.deadlines import is_overdue
from pickups.models import Pickup, PickupStatus
from pickups.state_machine import Event, apply

from .models import Order, OrderStatus

logger = logging.getLogger(__name__)


def _lock_order(order_id):
    try:
        return Order.objects.select_for_update(of=("self",)).select_related("marketer", "product").get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFound(f"Order {order_id} not found")


def _lock_pickup(pickup_id):
    return Pickup.objects.select_for_update(of=("self",)).select_related("product").get(pk=pickup_id)


def place_order(actor, pickup_id, number_of_devices, sold_amount, customer):
    """
    Attach a customer sale to the caller's pending pickup.

    Args:
        actor: Owner of the pickup
        pickup_id: Pickup ID
        number_of_devices: Devices sold, at most the pickup quantity
        sold_amount: Sale amount
        customer: dict with name, phone and optionally address, bnpl_platform

    Returns:
        Order in ``pending`` status

    Raises:
        NoActivePickup: No pending pickup of the caller with that id, or its deadline has passed
        InsufficientQuantity: More devices than the pickup holds
    """
    require(actor, Capability.PLACE_ORDER)
    try:
        amount = Decimal(str(sold_amount))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailed("sold_amount must be a number", field="sold_amount")
    if amount < 0:
        raise ValidationFailed("sold_amount cannot be negative", field="sold_amount")
    if not (customer.get("name") or "").strip() or not (customer.get("phone") or "").strip():
        raise ValidationFailed("Customer name and phone are required", field="customer")

    with transaction.atomic():
        try:
            pickup = _lock_pickup(pickup_id)
        except Pickup.DoesNotExist:
            raise NoActivePickup()
        if pickup.marketer_id != actor.id or pickup.status != PickupStatus.PENDING:
            raise NoActivePickup()
        if is_overdue(pickup.deadline):
            raise NoActivePickup("The deadline for this stock has passed")
        if number_of_devices > pickup.quantity:
            raise InsufficientQuantity(
                f"You only picked up {pickup.quantity} device(s)",
                requested=number_of_devices,
                quantity=pickup.quantity,
            )

        apply(pickup, Event.PLACE_ORDER)
        order = Order.objects.create(
            marketer_id=actor.id,
            pickup=pickup,
            product=pickup.product,
            number_of_devices=number_of_devices,
            sold_amount=amount,
            customer_name=customer["name"].strip(),
            customer_phone=customer["phone"].strip(),
            customer_address=(customer.get("address") or "").strip(),
            bnpl_platform=(customer.get("bnpl_platform") or "").strip(),
        )
        allocator.attach_units_to_order(pickup, order, number_of_devices)

        logger.info("Order %s placed on pickup %s (%d device(s))", order.pk, pickup.pk, number_of_devices)
        transaction.on_commit(lambda: events.order_placed(order))
    return order


def _lock_order_and_pickup(order_id):
    """
    Lock an order's pickup, then the order. The sweeper takes the same
    rows in the same order.
    """
    pickup_id = Order.objects.filter(pk=order_id).values_list("pickup_id", flat=True).first()
    if pickup_id is None:
        raise NotFound(f"Order {order_id} not found")
    pickup = _lock_pickup(pickup_id)
    return _lock_order(order_id), pickup


def confirm_order(actor, order_id, pickup_id=None):
    """
    Final confirmation of a pending order by a MasterAdmin.

    Sells the order's units, releases any other units still reserved on the
    pickup, closes the pickup as ``sold`` and credits commission once.

    Raises:
        NotPending: The order was already confirmed or cancelled
        IllegalTransition: The pickup is no longer pending
    """
    require(actor, Capability.CONFIRM_ORDER)
    now = timezone.now()

    with transaction.atomic():
        order, pickup = _lock_order_and_pickup(order_id)
        if pickup_id is not None and order.pickup_id != pickup_id:
            raise NotFound(f"Order {order_id} does not belong to pickup {pickup_id}")
        if order.status != OrderStatus.PENDING:
            raise NotPending(status=order.status)

        # the status predicate is the double-confirmation guard
        claimed = Order.objects.filter(pk=order.pk, status=OrderStatus.PENDING).update(
            status=OrderStatus.RELEASED_CONFIRMED,
            confirmed_at=now,
            confirmed_by=actor.profile,
            updated_at=now,
        )
        if not claimed:
            raise NotPending()
        order.status = OrderStatus.RELEASED_CONFIRMED
        order.confirmed_at = now
        order.confirmed_by = actor.profile

        apply(pickup, Event.CONFIRM_ORDER, sold_at=now, reviewed_by=actor.profile)
        sold = allocator.sell_order_units(pickup, order, created_by=actor.profile)
        allocator.release_units(pickup, created_by=actor.profile, note=f"Unsold units of order {order.pk}")

        if not order.commission_paid:
            get_ledger().credit_commission(
                marketer_id=order.marketer_id,
                order_id=order.pk,
                device_type=order.product.device_type,
                quantity=len(sold) or order.number_of_devices,
            )
            Order.objects.filter(pk=order.pk).update(commission_paid=True)
            order.commission_paid = True

        logger.info("Order %s confirmed by %s; pickup %s sold", order.pk, actor.id, pickup.pk)
        transaction.on_commit(lambda: events.order_confirmed(order))
    return order


def cancel_order(actor, order_id, reason=""):
    """
    Cancel a pending order. The pickup's reserved units go back to
    ``available`` and the pickup returns to ``pending``. Cancelling a
    cancelled order is a no-op.
    """
    require(actor, Capability.CANCEL_ORDER)
    now = timezone.now()

    with transaction.atomic():
        order, pickup = _lock_order_and_pickup(order_id)
        if actor.role != ChannelRole.MASTER_ADMIN and order.marketer_id != actor.id:
            raise NotFound(f"Order {order_id} not found")
        if order.status == OrderStatus.CANCELLED:
            return order
        claimed = Order.objects.filter(pk=order.pk, status=OrderStatus.PENDING).update(
            status=OrderStatus.CANCELLED,
            cancelled_at=now,
            cancel_reason=reason[:200],
            updated_at=now,
        )
        if not claimed:
            raise NotPending(status=order.status)
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = now
        order.cancel_reason = reason[:200]

        allocator.release_units(pickup, created_by=actor.profile, note=f"Order {order.pk} cancelled")
        if pickup.status == PickupStatus.PENDING_ORDER:
            apply(pickup, Event.CANCEL_ORDER)

        logger.info("Order %s cancelled by %s", order.pk, actor.id)
        transaction.on_commit(lambda: events.order_cancelled(order, reason))
    return order


def cancel_orders_for_expired_pickup(pickup, now=None):
    """
    Cancel the pending orders of a pickup the sweeper just expired.
    Runs inside the sweeper's batch transaction.
    """
    now = now or timezone.now()
    ids = list(
        Order.objects.select_for_update()
        .filter(pickup=pickup, status=OrderStatus.PENDING)
        .values_list("id", flat=True)
    )
    if not ids:
        return []
    Order.objects.filter(id__in=ids, status=OrderStatus.PENDING).update(
        status=OrderStatus.CANCELLED,
        cancelled_at=now,
        cancel_reason="Pickup deadline passed",
        updated_at=now,
    )
    for order in Order.objects.filter(id__in=ids):
        allocator.detach_order_units(order)
    return ids


def orders_for(actor, status=None):
    qs = Order.objects.select_related("marketer", "product", "pickup")
    if actor.role != ChannelRole.MASTER_ADMIN:
        qs = qs.filter(marketer_id=actor.id)
    if status:
        qs = qs.filter(status=status)
    return qs


def pending_orders():
    return list(
        Order.objects.filter(status=OrderStatus.PENDING)
        .select_related("marketer", "product", "pickup")
        .order_by("created_at")
    )
