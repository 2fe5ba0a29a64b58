# channel-backend/notifications/api.py
from rest_framework.response import Response

from common.api_mixins import ChannelAPIView

from .models import Notification
from .services import mark_read


def serialize_notification(n):
    return {
        "id": n.id,
        "message": n.message,
        "event_type": n.event_type,
        "is_read": n.is_read,
        "read_at": n.read_at,
        "created_at": n.created_at,
    }


class NotificationListView(ChannelAPIView):
    """
    GET /api/v1/notifications/?unread=1&page=&page_size=
    """

    def get(self, request):
        actor = self.get_actor(request)
        try:
            page = max(int(request.GET.get("page") or "1"), 1)
            page_size = min(max(int(request.GET.get("page_size") or "50"), 1), 200)
        except ValueError:
            page, page_size = 1, 50

        qs = Notification.objects.filter(recipient_id=actor.id)
        if request.GET.get("unread") in ("1", "true"):
            qs = qs.filter(is_read=False)

        total = qs.count()
        unread = Notification.objects.filter(recipient_id=actor.id, is_read=False).count()
        rows = qs[(page - 1) * page_size : page * page_size]
        return Response({
            "results": [serialize_notification(n) for n in rows],
            "count": total,
            "unread": unread,
        }, status=200)


class NotificationReadView(ChannelAPIView):
    """POST /api/v1/notifications/<id>/read"""

    def post(self, request, pk):
        notification = mark_read(self.get_actor(request), pk)
        return Response(serialize_notification(notification), status=200)
