# channel-backend/orders/api.py
from rest_framework.response import Response

from common.api_mixins import ChannelAPIView, positive_int
from common.exceptions import ValidationFailed

from .models import OrderStatus
from .services import cancel_order, confirm_order, orders_for, place_order


def serialize_order(o):
    return {
        "id": o.id,
        "pickup_id": o.pickup_id,
        "marketer_id": o.marketer_id,
        "product_id": o.product_id,
        "number_of_devices": o.number_of_devices,
        "sold_amount": str(o.sold_amount),
        "customer_name": o.customer_name,
        "customer_phone": o.customer_phone,
        "customer_address": o.customer_address,
        "bnpl_platform": o.bnpl_platform,
        "status": o.status,
        "commission_paid": o.commission_paid,
        "sale_date": o.sale_date,
        "confirmed_at": o.confirmed_at,
        "cancelled_at": o.cancelled_at,
    }


class OrderListCreateView(ChannelAPIView):
    """
    GET  /api/v1/orders/?status=
    POST /api/v1/orders/
    Body: {
      "pickup_id": 5,
      "number_of_devices": 1,
      "sold_amount": "150000.00",
      "customer_name": "...",
      "customer_phone": "...",
      "customer_address": "...",   // optional
      "bnpl_platform": "..."       // optional
    }
    """

    def get(self, request):
        actor = self.get_actor(request)
        status_f = (request.GET.get("status") or "").strip()
        if status_f and status_f not in OrderStatus.values:
            raise ValidationFailed(f"Unknown status {status_f}", field="status")
        rows = [serialize_order(o) for o in orders_for(actor, status=status_f or None)[:200]]
        return Response({"results": rows, "count": len(rows)}, status=200)

    def post(self, request):
        actor = self.get_actor(request)
        data = request.data
        pickup_id = positive_int(data, "pickup_id")
        number_of_devices = positive_int(data, "number_of_devices", default=1)
        if data.get("sold_amount") in (None, ""):
            raise ValidationFailed("sold_amount is required", field="sold_amount")
        customer = {
            "name": data.get("customer_name") or "",
            "phone": data.get("customer_phone") or "",
            "address": data.get("customer_address") or "",
            "bnpl_platform": data.get("bnpl_platform") or "",
        }
        order = place_order(actor, pickup_id, number_of_devices, data.get("sold_amount"), customer)
        return Response(serialize_order(order), status=201)


class OrderConfirmView(ChannelAPIView):
    """POST /api/v1/orders/<id>/confirm   Body: {"pickup_id": 5}  (MasterAdmin)"""

    def post(self, request, pk):
        actor = self.get_actor(request)
        pickup_id = positive_int(request.data, "pickup_id", required=False)
        order = confirm_order(actor, pk, pickup_id=pickup_id)
        return Response(serialize_order(order), status=200)


class OrderCancelView(ChannelAPIView):
    """POST /api/v1/orders/<id>/cancel   Body: {"reason": "..."}"""

    def post(self, request, pk):
        actor = self.get_actor(request)
        order = cancel_order(actor, pk, reason=(request.data.get("reason") or "").strip())
        return Response(serialize_order(order), status=200)
