# channel-backend/catalog/models.py
from django.db import models

from common.models import TimeStampedModel


class Product(TimeStampedModel):
    """
    A device line stocked by a dealer. Physical units live in
    ``inventory.InventoryUnit``; ``quantity`` is the on-hand count kept in step
    with the inventory movement log.
    """
    dealer = models.ForeignKey("accounts.ChannelUser", on_delete=models.PROTECT, related_name="products")
    device_name = models.CharField(max_length=120)
    device_model = models.CharField(max_length=120, blank=True)
    device_type = models.CharField(max_length=60, db_index=True, help_text="Commission rates are keyed by this")
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    quantity = models.IntegerField(default=0, help_text="On-hand units (receipts minus confirmed sales)")
    restocked_units = models.PositiveIntegerField(default=0, help_text="Units that came back through confirmed returns")
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        indexes = [
            models.Index(fields=["dealer", "is_active"], name="catalog_dealer_active_idx"),
        ]

    def __str__(self):
        label = f"{self.device_name} {self.device_model}".strip()
        return f"{label} ({self.device_type})"
