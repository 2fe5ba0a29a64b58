# channel-backend/pickups/models.py
from django.db import models
from django.db.models import Q
from django.utils import timezone

from common.models import TimeStampedModel


class PickupStatus(models.TextChoices):
    PENDING           = "pending",           "Pending"
    PENDING_ORDER     = "pending_order",     "Pending Order"
    RETURN_PENDING    = "return_pending",    "Pending Return"
    RETURNED          = "returned",          "Returned"
    TRANSFER_PENDING  = "transfer_pending",  "Transfer Pending"
    TRANSFER_APPROVED = "transfer_approved", "Transfer Approved"
    TRANSFER_REJECTED = "transfer_rejected", "Transfer Rejected"
    SOLD              = "sold",              "Sold"
    EXPIRED           = "expired",           "Expired"


# Statuses that count against the one-pickup-per-marketer limit.
ACTIVE_STATUSES = (
    PickupStatus.PENDING,
    PickupStatus.PENDING_ORDER,
    PickupStatus.RETURN_PENDING,
    PickupStatus.TRANSFER_PENDING,
)


class PickupQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status__in=ACTIVE_STATUSES)


class Pickup(TimeStampedModel):
    """
    A reservation of dealer stock to one marketer for a bounded window.
    Never deleted: terminal pickups stay as history.
    """
    marketer = models.ForeignKey("accounts.ChannelUser", on_delete=models.PROTECT, related_name="pickups")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="pickups")
    quantity = models.PositiveIntegerField(default=1)
    reserved_count = models.PositiveIntegerField(default=0, help_text="Units originally reserved for this pickup")
    pickup_date = models.DateTimeField(default=timezone.now)
    deadline = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=20, choices=PickupStatus.choices, default=PickupStatus.PENDING, db_index=True)

    # transfer
    transfer_to = models.ForeignKey(
        "accounts.ChannelUser", on_delete=models.PROTECT, null=True, blank=True, related_name="incoming_transfers"
    )
    transfer_reason = models.TextField(blank=True)
    previous_marketer = models.ForeignKey(
        "accounts.ChannelUser", on_delete=models.PROTECT, null=True, blank=True, related_name="transferred_pickups"
    )
    transferred_from = models.ForeignKey(
        "self", on_delete=models.PROTECT, null=True, blank=True, related_name="successors"
    )

    # lifecycle timestamps
    return_requested_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True, help_text="Set when the sweeper forced a return")
    transfer_requested_at = models.DateTimeField(null=True, blank=True)
    transfer_reviewed_at = models.DateTimeField(null=True, blank=True)
    sold_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        "accounts.ChannelUser", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    objects = PickupQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["marketer"],
                condition=Q(status__in=ACTIVE_STATUSES),
                name="uniq_active_pickup_per_marketer",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "deadline"], name="pickup_status_deadline_idx"),
            models.Index(fields=["marketer", "status"], name="pickup_marketer_status_idx"),
        ]

    def __str__(self):
        return f"Pickup #{self.id} {self.marketer_id} x{self.quantity} ({self.status})"

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    def status_label(self, now=None):
        """Human friendly status used by listings; an overdue pending pickup reads as Expired."""
        from .deadlines import is_overdue
        if self.status == PickupStatus.PENDING and is_overdue(self.deadline, now):
            return PickupStatus.EXPIRED.label
        return PickupStatus(self.status).label


class AdditionalRequestStatus(models.TextChoices):
    PENDING  = "pending",  "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class AdditionalPickupRequest(TimeStampedModel):
    """
    A marketer asking to pick up more than one unit at a time.

    An approved request is consumed by the next pickup the marketer creates.
    Rejected requests stay as history and carry the cooldown.
    """
    marketer = models.ForeignKey("accounts.ChannelUser", on_delete=models.CASCADE, related_name="additional_pickup_requests")
    status = models.CharField(
        max_length=10, choices=AdditionalRequestStatus.choices, default=AdditionalRequestStatus.PENDING, db_index=True
    )
    note = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        "accounts.ChannelUser", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    next_request_allowed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["marketer"],
                condition=Q(status__in=["pending", "approved"]),
                name="uniq_open_additional_request_per_marketer",
            ),
        ]

    def __str__(self):
        return f"AdditionalPickupRequest #{self.id} {self.marketer_id} ({self.status})"
