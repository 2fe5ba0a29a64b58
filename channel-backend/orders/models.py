# channel-backend/orders/models.py
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel


class OrderStatus(models.TextChoices):
    PENDING            = "pending",            "Pending"
    CONFIRMED          = "confirmed",          "Confirmed"
    RELEASED_CONFIRMED = "released_confirmed", "Released / Confirmed"
    CANCELLED          = "cancelled",          "Cancelled"


class Order(TimeStampedModel):
    """
    A customer sale placed against a pickup. Units stay reserved until a
    MasterAdmin confirms it; commission is credited only at confirmation.
    """
    marketer = models.ForeignKey("accounts.ChannelUser", on_delete=models.PROTECT, related_name="orders")
    pickup = models.ForeignKey("pickups.Pickup", on_delete=models.PROTECT, related_name="orders")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="orders")
    number_of_devices = models.PositiveIntegerField(default=1)
    sold_amount = models.DecimalField(max_digits=12, decimal_places=2)

    customer_name = models.CharField(max_length=160)
    customer_phone = models.CharField(max_length=32)
    customer_address = models.TextField(blank=True)
    bnpl_platform = models.CharField(max_length=60, blank=True, help_text="Buy-now-pay-later platform, if any")

    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True)
    commission_paid = models.BooleanField(default=False)
    sale_date = models.DateTimeField(default=timezone.now)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    confirmed_by = models.ForeignKey(
        "accounts.ChannelUser", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=200, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
            models.Index(fields=["marketer", "status"], name="order_marketer_status_idx"),
        ]

    def __str__(self):
        return f"Order #{self.id} pickup={self.pickup_id} ({self.status})"
