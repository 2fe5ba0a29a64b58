# channel-backend/common/permissions.py
from rest_framework import permissions

from common.roles import ChannelRole


def user_role(user):
    if not (user and user.is_authenticated):
        return None
    profile = getattr(user, "channel_profile", None)
    return profile.role if profile else None


class IsMasterAdmin(permissions.BasePermission):
    """
    Allows access only to MasterAdmin accounts.
    Review and confirmation endpoints sit behind this.
    """
    def has_permission(self, request, view):
        return user_role(request.user) == ChannelRole.MASTER_ADMIN
