# channel-backend/notifications/models.py
from django.db import models


class Notification(models.Model):
    """Durable copy of every message fanned out to a channel user."""
    recipient = models.ForeignKey("accounts.ChannelUser", on_delete=models.CASCADE, related_name="notifications")
    message = models.TextField()
    event_type = models.CharField(max_length=40, blank=True, db_index=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx")]

    def __str__(self):
        return f"To {self.recipient_id}: {self.message[:40]}"
