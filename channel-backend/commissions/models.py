# channel-backend/commissions/models.py
from django.db import models

from common.models import TimeStampedModel


class CommissionRate(TimeStampedModel):
    """Per-device commission for each tier of the hierarchy."""
    device_type = models.CharField(max_length=60, unique=True)
    marketer_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    admin_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    super_admin_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    def __str__(self):
        return f"{self.device_type}: {self.marketer_amount}/{self.admin_amount}/{self.super_admin_amount}"


class Wallet(TimeStampedModel):
    owner = models.OneToOneField("accounts.ChannelUser", on_delete=models.CASCADE, related_name="wallet")
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    def __str__(self):
        return f"Wallet {self.owner_id}: {self.balance}"


class CommissionCredit(models.Model):
    """
    One credit per (order, beneficiary role). The unique constraint is what
    makes crediting the same order twice a no-op.
    """
    ROLE_CHOICES = [
        ("marketer", "Marketer"),
        ("admin", "Admin"),
        ("super_admin", "Super Admin"),
    ]

    order = models.ForeignKey("orders.Order", on_delete=models.PROTECT, related_name="commission_credits")
    beneficiary = models.ForeignKey("accounts.ChannelUser", on_delete=models.PROTECT, related_name="commission_credits")
    beneficiary_role = models.CharField(max_length=16, choices=ROLE_CHOICES)
    device_type = models.CharField(max_length=60)
    quantity = models.PositiveIntegerField()
    unit_amount = models.DecimalField(max_digits=12, decimal_places=2)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["order", "beneficiary_role"], name="uniq_commission_per_order_role"),
        ]

    def __str__(self):
        return f"Order {self.order_id} {self.beneficiary_role}: {self.amount}"
