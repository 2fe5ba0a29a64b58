from django.contrib import admin

from .models import CommissionRate, CommissionCredit, Wallet


@admin.register(CommissionRate)
class CommissionRateAdmin(admin.ModelAdmin):
    list_display = ("device_type", "marketer_amount", "admin_amount", "super_admin_amount", "updated_at")
    search_fields = ("device_type",)


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ("owner", "balance", "updated_at")
    search_fields = ("owner__unique_id", "owner__name")
    readonly_fields = ("balance",)


@admin.register(CommissionCredit)
class CommissionCreditAdmin(admin.ModelAdmin):
    list_display = ("created_at", "order", "beneficiary", "beneficiary_role", "device_type", "quantity", "amount")
    list_filter = ("beneficiary_role", "device_type", "created_at")
    search_fields = ("beneficiary__unique_id", "order__id")
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        # Credits are only written by the ledger
        return False

    def has_change_permission(self, request, obj=None):
        return False
