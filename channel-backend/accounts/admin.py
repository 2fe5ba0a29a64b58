from django.contrib import admin

from .models import ChannelUser


@admin.register(ChannelUser)
class ChannelUserAdmin(admin.ModelAdmin):
    list_display = ("unique_id", "name", "role", "location", "admin", "super_admin", "is_locked", "created_at")
    list_filter = ("role", "location", "is_locked")
    search_fields = ("unique_id", "name", "business_name", "user__username", "user__email")
    raw_id_fields = ("user", "admin", "super_admin")
    readonly_fields = ("locked_at", "created_at", "updated_at")
