# channel-backend/inventory/ledger.py
import logging

from django.db import transaction
from django.db.models import F

from catalog.models import Product
from common.exceptions import NotFound, ValidationFailed
from common.policy import Capability, require
from common.roles import ChannelRole

from .models import InventoryUnit, InventoryMovement

logger = logging.getLogger(__name__)


def record_movement(
    *,
    product,
    kind,
    quantity,
    unit_ids=None,
    pickup=None,
    order=None,
    on_hand_delta=0,
    created_by=None,
    note="",
):
    """
    Append a row to the movement log.

    A non-zero ``on_hand_delta`` is applied to ``Product.quantity`` in the
    same transaction and the resulting balance is stored on the row.
    """
    balance_after = None
    if on_hand_delta:
        Product.objects.filter(pk=product.pk).update(quantity=F("quantity") + on_hand_delta)
        balance_after = Product.objects.filter(pk=product.pk).values_list("quantity", flat=True).get()
        product.quantity = balance_after

    return InventoryMovement.objects.create(
        product=product,
        pickup=pickup,
        order=order,
        kind=kind,
        quantity=quantity,
        on_hand_delta=on_hand_delta,
        balance_after=balance_after,
        unit_ids=list(unit_ids or []),
        note=note,
        created_by=created_by,
    )


def add_units(actor, product_id, imeis, note=""):
    """
    Receive new physical units for a product.

    Args:
        actor: Dealer owning the product, or a MasterAdmin
        product_id: Product ID
        imeis: Iterable of unit identifiers, unique across all units
        note: Optional note for the receipt movement

    Returns:
        List of created InventoryUnit instances

    Raises:
        NotFound: Product does not exist
        ValidationFailed: Empty, duplicate or already known identifiers
        AuthorizationDenied: Caller may not receive stock for this product
    """
    require(actor, Capability.RECEIVE_STOCK)
    cleaned = [str(i).strip() for i in (imeis or []) if str(i).strip()]
    if not cleaned:
        raise ValidationFailed("At least one IMEI is required", field="imeis")
    if len(set(cleaned)) != len(cleaned):
        raise ValidationFailed("Duplicate IMEIs in request", field="imeis")

    try:
        product = Product.objects.get(pk=product_id)
    except Product.DoesNotExist:
        raise NotFound(f"Product {product_id} not found")
    if actor.role == ChannelRole.DEALER and product.dealer_id != actor.id:
        raise NotFound(f"Product {product_id} not found")

    existing = list(InventoryUnit.objects.filter(imei__in=cleaned).values_list("imei", flat=True))
    if existing:
        raise ValidationFailed("Some IMEIs already exist", field="imeis", existing=sorted(existing))

    with transaction.atomic():
        units = InventoryUnit.objects.bulk_create(
            [InventoryUnit(product=product, imei=imei) for imei in cleaned]
        )
        # bulk_create does not return ids on every backend
        ids = list(
            InventoryUnit.objects.filter(imei__in=cleaned).order_by("id").values_list("id", flat=True)
        )
        record_movement(
            product=product,
            kind=InventoryMovement.Kind.RECEIPT,
            quantity=len(cleaned),
            unit_ids=ids,
            on_hand_delta=len(cleaned),
            created_by=actor.profile,
            note=note,
        )

    logger.info("Received %d unit(s) for product %s", len(cleaned), product.pk)
    return units
