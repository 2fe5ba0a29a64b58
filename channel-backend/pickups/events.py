# channel-backend/pickups/events.py
"""
Lifecycle notifications.

Each function is registered with ``transaction.on_commit`` by the service
that performed the transition, so it only runs once the change is durable.
Delivery failures are absorbed by ``notify_many``.
"""
from notifications.services import dedupe, master_admins, notify_many, stakeholders_for


def _device(pickup):
    product = pickup.product
    label = f"{product.device_name} {product.device_model}".strip()
    return f"{pickup.quantity} x {label}"


def _who(user):
    return f"{user.display_name} ({user.unique_id})"


def pickup_created(pickup):
    notify_many(
        stakeholders_for(pickup.marketer),
        f"{_who(pickup.marketer)} picked up {_device(pickup)}. "
        f"Deadline: {pickup.deadline:%Y-%m-%d %H:%M}.",
        event_type="pickup_created",
    )


def return_requested(pickup):
    notify_many(
        stakeholders_for(pickup.marketer, include_master_admins=True),
        f"{_who(pickup.marketer)} requested to return {_device(pickup)} (pickup #{pickup.id}).",
        event_type="return_requested",
    )


def return_confirmed(pickup):
    notify_many(
        stakeholders_for(pickup.marketer, include_master_admins=True),
        f"Return of {_device(pickup)} by {_who(pickup.marketer)} has been confirmed.",
        event_type="return_confirmed",
    )


def pickup_expired(pickup, cancelled_order_ids=()):
    message = (
        f"Pickup #{pickup.id} ({_device(pickup)}) by {_who(pickup.marketer)} passed its deadline "
        f"and is now pending return."
    )
    if cancelled_order_ids:
        message += " The unconfirmed order was cancelled."
    notify_many(
        stakeholders_for(pickup.marketer, include_master_admins=True),
        message,
        event_type="pickup_expired",
    )


def transfer_requested(pickup):
    recipients = stakeholders_for(pickup.marketer, include_master_admins=True)
    if pickup.transfer_to_id:
        recipients.append(pickup.transfer_to)
    notify_many(
        recipients,
        f"{_who(pickup.marketer)} requested to transfer {_device(pickup)} to "
        f"{_who(pickup.transfer_to)}. Reason: {pickup.transfer_reason or '-'}",
        event_type="transfer_requested",
    )


def transfer_reviewed(pickup, approved, original_owner, target):
    recipients = stakeholders_for(original_owner, include_master_admins=True)
    if target is not None:
        recipients += stakeholders_for(target)
    outcome = "approved" if approved else "rejected"
    notify_many(
        dedupe(recipients),
        f"Transfer of {_device(pickup)} from {_who(original_owner)} to "
        f"{_who(target) if target else '-'} was {outcome}.",
        event_type=f"transfer_{outcome}",
    )


def order_placed(order):
    notify_many(
        stakeholders_for(order.marketer, include_master_admins=True),
        f"{_who(order.marketer)} placed order #{order.id} for {order.number_of_devices} device(s) "
        f"to {order.customer_name}. Awaiting confirmation.",
        event_type="order_placed",
    )


def order_confirmed(order):
    notify_many(
        stakeholders_for(order.marketer, include_master_admins=True),
        f"Order #{order.id} by {_who(order.marketer)} has been confirmed.",
        event_type="order_confirmed",
        push_to={order.marketer_id},
    )


def order_cancelled(order, reason=""):
    message = f"Order #{order.id} by {_who(order.marketer)} was cancelled."
    if reason:
        message += f" {reason}"
    notify_many(
        stakeholders_for(order.marketer, include_master_admins=True),
        message,
        event_type="order_cancelled",
    )


def additional_pickup_requested(request):
    notify_many(
        stakeholders_for(request.marketer) + master_admins(),
        f"{_who(request.marketer)} requested an additional pickup allowance.",
        event_type="additional_pickup_requested",
    )


def additional_pickup_reviewed(request):
    notify_many(
        [request.marketer],
        f"Your additional pickup request was {request.status}.",
        event_type=f"additional_pickup_{request.status}",
    )
