# channel-backend/inventory/allocator.py
"""
Reservation allocator.

This module is the only writer of ``InventoryUnit.status``:

    available -> reserved   reserve_units
    reserved  -> available  release_units
    reserved  -> sold       sell_order_units

Every function must run inside the caller's transaction; a raised error rolls
the whole workflow back so a partial reservation is never visible.
Candidate rows are picked with ``SELECT ... FOR UPDATE SKIP LOCKED`` so two
pickups for the same product each take whatever is still free instead of
queueing behind each other. The status predicate on every UPDATE keeps the
claim exact on backends without row locks.
"""
import logging

from django.db import transaction

from common.exceptions import InsufficientQuantity, InsufficientStock, ValidationFailed

from .ledger import record_movement
from .models import InventoryUnit, InventoryMovement

logger = logging.getLogger(__name__)

Status = InventoryUnit.Status


def available_count(product_id):
    return InventoryUnit.objects.filter(product_id=product_id, status=Status.AVAILABLE).count()


def reserve_units(pickup, quantity, created_by=None):
    """
    Claim ``quantity`` available units of the pickup's product for the pickup.

    Returns:
        List of claimed unit IDs

    Raises:
        InsufficientStock: Fewer than ``quantity`` units could be claimed.
            Nothing stays reserved.
    """
    if quantity <= 0:
        raise ValidationFailed("Reservation quantity must be greater than 0")

    with transaction.atomic():
        candidate_ids = list(
            InventoryUnit.objects.select_for_update(skip_locked=True)
            .filter(product_id=pickup.product_id, status=Status.AVAILABLE)
            .order_by("id")
            .values_list("id", flat=True)[:quantity]
        )
        if len(candidate_ids) < quantity:
            raise InsufficientStock(requested=quantity, available=len(candidate_ids))

        claimed = InventoryUnit.objects.filter(id__in=candidate_ids, status=Status.AVAILABLE).update(
            status=Status.RESERVED, pickup=pickup, order=None
        )
        if claimed != quantity:
            # lost a race on a backend without SKIP LOCKED; the savepoint undoes our claims
            raise InsufficientStock(requested=quantity, available=claimed)

        record_movement(
            product=pickup.product,
            kind=InventoryMovement.Kind.RESERVE,
            quantity=quantity,
            unit_ids=candidate_ids,
            pickup=pickup,
            created_by=created_by,
        )
    logger.info("Reserved units %s for pickup %s", candidate_ids, pickup.pk)
    return candidate_ids


def release_units(pickup, created_by=None, note=""):
    """
    Put every unit still reserved by ``pickup`` back to available.
    Idempotent: returns an empty list when nothing is reserved.
    """
    with transaction.atomic():
        ids = list(
            InventoryUnit.objects.select_for_update()
            .filter(pickup=pickup, status=Status.RESERVED)
            .order_by("id")
            .values_list("id", flat=True)
        )
        if not ids:
            return []
        released = InventoryUnit.objects.filter(id__in=ids, status=Status.RESERVED).update(
            status=Status.AVAILABLE, pickup=None, order=None
        )
        record_movement(
            product=pickup.product,
            kind=InventoryMovement.Kind.RELEASE,
            quantity=released,
            unit_ids=ids,
            pickup=pickup,
            created_by=created_by,
            note=note,
        )
    logger.info("Released %d unit(s) from pickup %s", released, pickup.pk)
    return ids


def attach_units_to_order(pickup, order, count):
    """
    Link ``count`` of the pickup's reserved units to a placed order.
    The units stay reserved until the order is confirmed.
    """
    ids = list(
        InventoryUnit.objects.select_for_update()
        .filter(pickup=pickup, status=Status.RESERVED, order__isnull=True)
        .order_by("id")
        .values_list("id", flat=True)[:count]
    )
    if len(ids) < count:
        raise InsufficientQuantity(
            f"Only {len(ids)} reserved unit(s) left on this pickup",
            requested=count,
            reserved=len(ids),
        )
    InventoryUnit.objects.filter(id__in=ids).update(order=order)
    return ids


def detach_order_units(order):
    """Unlink the units of an order cancelled by expiry; they stay reserved until the return is confirmed."""
    return InventoryUnit.objects.filter(order=order, status=Status.RESERVED).update(order=None)


def sell_order_units(pickup, order, created_by=None):
    """
    Mark the order's reserved units sold and take them off the product's
    on-hand count.
    """
    with transaction.atomic():
        ids = list(
            InventoryUnit.objects.select_for_update()
            .filter(pickup=pickup, order=order, status=Status.RESERVED)
            .order_by("id")
            .values_list("id", flat=True)
        )
        if not ids:
            return []
        InventoryUnit.objects.filter(id__in=ids, status=Status.RESERVED).update(status=Status.SOLD)
        record_movement(
            product=pickup.product,
            kind=InventoryMovement.Kind.SALE,
            quantity=len(ids),
            unit_ids=ids,
            pickup=pickup,
            order=order,
            on_hand_delta=-len(ids),
            created_by=created_by,
        )
    logger.info("Sold %d unit(s) via order %s (pickup %s)", len(ids), order.pk, pickup.pk)
    return ids


def hand_off_units(source, target, created_by=None):
    """
    Move every unit reserved by ``source`` onto ``target``. Used when a
    transfer is approved; both sides get a movement row.
    """
    with transaction.atomic():
        ids = list(
            InventoryUnit.objects.select_for_update()
            .filter(pickup=source, status=Status.RESERVED)
            .order_by("id")
            .values_list("id", flat=True)
        )
        if not ids:
            return []
        InventoryUnit.objects.filter(id__in=ids).update(pickup=target, order=None)
        record_movement(
            product=source.product,
            kind=InventoryMovement.Kind.TRANSFER_OUT,
            quantity=len(ids),
            unit_ids=ids,
            pickup=source,
            created_by=created_by,
            note=f"Handed off to pickup {target.pk}",
        )
        record_movement(
            product=target.product,
            kind=InventoryMovement.Kind.TRANSFER_IN,
            quantity=len(ids),
            unit_ids=ids,
            pickup=target,
            created_by=created_by,
            note=f"Received from pickup {source.pk}",
        )
    return ids
