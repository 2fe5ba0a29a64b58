# channel-backend/inventory/models.py
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel


class InventoryUnit(TimeStampedModel):
    """
    One physical, individually tracked device.

    A unit points at a pickup while it is reserved, and keeps pointing at it
    once it has been sold through that pickup's order. Status changes are
    made only by ``inventory.allocator``.
    """
    class Status(models.TextChoices):
        AVAILABLE = "available", "Available"
        RESERVED  = "reserved",  "Reserved"
        SOLD      = "sold",      "Sold"

    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="units")
    imei = models.CharField(max_length=32, unique=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.AVAILABLE, db_index=True)
    pickup = models.ForeignKey("pickups.Pickup", on_delete=models.PROTECT, null=True, blank=True, related_name="units")
    order = models.ForeignKey("orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="units")

    class Meta:
        indexes = [
            models.Index(fields=["product", "status"], name="inv_unit_product_status_idx"),
            models.Index(fields=["pickup", "status"], name="inv_unit_pickup_status_idx"),
        ]

    def __str__(self):
        return f"{self.imei} ({self.status})"


class InventoryMovement(models.Model):
    """
    Immutable movement log: every reservation, release, hand-off and sale of
    units, plus every change to a product's on-hand count.
    """
    class Kind(models.TextChoices):
        RECEIPT      = "RECEIPT",      "Receipt"
        RESERVE      = "RESERVE",      "Reserve"
        RELEASE      = "RELEASE",      "Release"
        SALE         = "SALE",         "Sale"
        TRANSFER_OUT = "TRANSFER_OUT", "Transfer Out"
        TRANSFER_IN  = "TRANSFER_IN",  "Transfer In"

    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="movements")
    pickup = models.ForeignKey("pickups.Pickup", on_delete=models.PROTECT, null=True, blank=True, related_name="movements")
    order = models.ForeignKey("orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="movements")
    kind = models.CharField(max_length=16, choices=Kind.choices, db_index=True)

    quantity = models.PositiveIntegerField(help_text="Number of units moved")
    on_hand_delta = models.IntegerField(default=0)  # signed
    balance_after = models.IntegerField(null=True, blank=True)
    unit_ids = models.JSONField(default=list, blank=True)
    note = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    created_by = models.ForeignKey(
        "accounts.ChannelUser", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["product", "created_at"], name="inv_move_product_created_idx"),
            models.Index(fields=["pickup", "kind"], name="inv_move_pickup_kind_idx"),
        ]

    def __str__(self):
        return f"{self.created_at:%Y-%m-%d %H:%M} {self.kind} x{self.quantity} product={self.product_id}"
