# channel-backend/common/api_mixins.py
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.exceptions import ChannelError, ValidationFailed
from common.policy import Actor


class HasChannelProfile(BasePermission):
    message = "No channel profile is linked to this account"

    def has_permission(self, request, view):
        u = getattr(request, "user", None)
        if not (u and u.is_authenticated):
            return False
        return getattr(u, "channel_profile", None) is not None


class ChannelAPIView(APIView):
    """
    Base view for the channel endpoints.
    Resolves the calling actor and turns domain errors into JSON responses.
    """
    permission_classes = [IsAuthenticated, HasChannelProfile]

    def get_actor(self, request):
        return Actor.for_user(request.user)

    def handle_exception(self, exc):
        if isinstance(exc, ChannelError):
            return Response(exc.as_dict(), status=exc.http_status)
        return super().handle_exception(exc)


def positive_int(data, field, default=None, required=True):
    """Read a positive integer from request data before any work starts."""
    raw = data.get(field, default)
    if raw in (None, ""):
        if required:
            raise ValidationFailed(f"{field} is required", field=field)
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{field} must be an integer", field=field)
    if value <= 0:
        raise ValidationFailed(f"{field} must be greater than 0", field=field)
    return value


def review_action(data):
    action = (data.get("action") or "").strip().lower()
    if action not in {"approve", "reject"}:
        raise ValidationFailed("action must be 'approve' or 'reject'", field="action")
    return action
