from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "device_name", "device_model", "device_type", "dealer", "quantity", "restocked_units", "is_active")
    list_filter = ("device_type", "is_active", "dealer__location")
    search_fields = ("device_name", "device_model", "dealer__business_name", "dealer__unique_id")
    raw_id_fields = ("dealer",)
    readonly_fields = ("quantity", "restocked_units", "created_at", "updated_at")
