from django.contrib import admin

from .models import Pickup, AdditionalPickupRequest


@admin.register(Pickup)
class PickupAdmin(admin.ModelAdmin):
    list_display = ("id", "marketer", "product", "quantity", "status", "pickup_date", "deadline", "transfer_to")
    list_filter = ("status", "pickup_date", "product__device_type")
    search_fields = ("marketer__unique_id", "marketer__name", "product__device_name", "transfer_reason")
    raw_id_fields = ("marketer", "product", "transfer_to", "previous_marketer", "transferred_from", "reviewed_by")
    date_hierarchy = "pickup_date"
    # status moves only through the lifecycle services
    readonly_fields = (
        "status", "reserved_count", "return_requested_at", "returned_at", "expired_at",
        "transfer_requested_at", "transfer_reviewed_at", "sold_at", "created_at", "updated_at",
    )

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AdditionalPickupRequest)
class AdditionalPickupRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "marketer", "status", "reviewed_by", "reviewed_at", "next_request_allowed_at", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("marketer__unique_id", "marketer__name", "note")
    raw_id_fields = ("marketer", "reviewed_by")
    readonly_fields = ("created_at", "updated_at")
