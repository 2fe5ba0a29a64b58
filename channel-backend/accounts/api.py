# channel-backend/accounts/api.py
from rest_framework.response import Response

from common.api_mixins import ChannelAPIView

from .services import lock_account, unlock_account


def serialize_user(u):
    return {
        "id": u.id,
        "unique_id": u.unique_id,
        "name": u.display_name,
        "role": u.role,
        "location": u.location,
        "admin_id": u.admin_id,
        "super_admin_id": u.super_admin_id,
        "is_locked": u.is_locked,
        "locked_at": u.locked_at,
        "lock_reason": u.lock_reason,
    }


class MeView(ChannelAPIView):
    """GET /api/v1/accounts/me"""

    def get(self, request):
        return Response(serialize_user(self.get_actor(request).profile), status=200)


class AccountLockView(ChannelAPIView):
    """
    POST /api/v1/accounts/<id>/lock     Body: {"reason": "..."}
    POST /api/v1/accounts/<id>/unlock
    MasterAdmin only.
    """
    lock = True

    def post(self, request, pk):
        actor = self.get_actor(request)
        if self.lock:
            reason = (request.data.get("reason") or "").strip()
            user = lock_account(actor, pk, reason=reason)
        else:
            user = unlock_account(actor, pk)
        return Response(serialize_user(user), status=200)
