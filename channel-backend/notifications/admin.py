from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "recipient", "event_type", "is_read", "created_at")
    list_filter = ("event_type", "is_read", "created_at")
    search_fields = ("message", "recipient__unique_id", "recipient__name")
    readonly_fields = ("recipient", "message", "event_type", "created_at")
    date_hierarchy = "created_at"
