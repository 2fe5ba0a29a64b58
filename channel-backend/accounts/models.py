# channel-backend/accounts/models.py
from django.conf import settings
from django.db import models

from common.models import TimeStampedModel
from common.roles import ChannelRole


class ChannelUser(TimeStampedModel):
    """
    Channel profile for a Django user: role, location and place in the
    marketer -> admin -> super admin hierarchy.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="channel_profile")
    unique_id = models.CharField(max_length=32, unique=True)
    role = models.CharField(max_length=20, choices=ChannelRole.choices, default=ChannelRole.MARKETER, db_index=True)
    name = models.CharField(max_length=120, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    location = models.CharField(max_length=80, db_index=True)
    business_name = models.CharField(max_length=160, blank=True)

    # hierarchy: a marketer reports to an admin, an admin to a super admin
    admin = models.ForeignKey("self", on_delete=models.SET_NULL, null=True, blank=True, related_name="marketers")
    super_admin = models.ForeignKey("self", on_delete=models.SET_NULL, null=True, blank=True, related_name="admins")

    is_locked = models.BooleanField(default=False)
    locked_at = models.DateTimeField(null=True, blank=True)
    lock_reason = models.TextField(blank=True)

    class Meta:
        indexes = [models.Index(fields=["role", "location"], name="accounts_role_location_idx")]

    def __str__(self):
        return f"{self.display_name} ({self.role})"

    @property
    def display_name(self):
        return self.name or self.business_name or self.unique_id

    def stakeholder_chain(self):
        """The user followed by the admin and super admin above them, without duplicates."""
        chain = [self]
        if self.admin_id:
            chain.append(self.admin)
        super_admin = self.super_admin
        if super_admin is None and self.admin_id:
            super_admin = self.admin.super_admin
        if super_admin is not None:
            chain.append(super_admin)
        seen, result = set(), []
        for u in chain:
            if u.pk not in seen:
                seen.add(u.pk)
                result.append(u)
        return result
