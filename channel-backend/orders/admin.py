from django.contrib import admin

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "marketer", "pickup", "product", "number_of_devices", "sold_amount", "status", "commission_paid", "created_at")
    list_filter = ("status", "commission_paid", "bnpl_platform", "created_at")
    search_fields = ("customer_name", "customer_phone", "marketer__unique_id", "marketer__name")
    raw_id_fields = ("marketer", "pickup", "product", "confirmed_by")
    readonly_fields = ("status", "commission_paid", "confirmed_at", "confirmed_by", "cancelled_at", "created_at", "updated_at")
    date_hierarchy = "created_at"
