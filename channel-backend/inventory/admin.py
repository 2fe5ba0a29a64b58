from django.contrib import admin

from .models import InventoryUnit, InventoryMovement


@admin.register(InventoryUnit)
class InventoryUnitAdmin(admin.ModelAdmin):
    list_display = ("id", "imei", "product", "status", "pickup", "order", "updated_at")
    list_filter = ("status", "product__device_type")
    search_fields = ("imei", "product__device_name")
    raw_id_fields = ("product", "pickup", "order")
    # status is owned by the allocator
    readonly_fields = ("status", "pickup", "order", "created_at", "updated_at")


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "product", "kind", "quantity", "on_hand_delta", "balance_after", "pickup", "order", "created_by")
    list_filter = ("kind", "created_at")
    search_fields = ("product__device_name", "note")
    date_hierarchy = "created_at"
    readonly_fields = ("product", "pickup", "order", "kind", "quantity", "on_hand_delta", "balance_after", "unit_ids", "note", "created_at", "created_by")

    def has_add_permission(self, request):
        # Movements should only be created programmatically, not via admin
        return False

    def has_change_permission(self, request, obj=None):
        # Movements are immutable
        return False
