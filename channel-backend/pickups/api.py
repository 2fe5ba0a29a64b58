# channel-backend/pickups/api.py
from django.utils import timezone
from rest_framework.response import Response

from common.api_mixins import ChannelAPIView, positive_int, review_action
from common.exceptions import ValidationFailed
from common.permissions import IsMasterAdmin
from orders.services import pending_orders

from .allowance import check_eligibility, get_allowance, request_additional_pickup, review_additional_request
from .models import PickupStatus
from .services import (
    confirm_return,
    create_bulk_pickup,
    create_pickup,
    pending_confirmations,
    pickups_for,
    request_return,
    request_transfer,
    review_transfer,
)


def serialize_pickup(p, now=None):
    product = p.product
    return {
        "id": p.id,
        "marketer_id": p.marketer_id,
        "marketer_name": p.marketer.display_name,
        "product_id": p.product_id,
        "device_name": product.device_name,
        "device_model": product.device_model,
        "device_type": product.device_type,
        "quantity": p.quantity,
        "pickup_date": p.pickup_date,
        "deadline": p.deadline,
        "status": p.status,
        "status_label": p.status_label(now),
        "transfer_to_id": p.transfer_to_id,
        "transfer_reason": p.transfer_reason,
        "transferred_from_id": p.transferred_from_id,
        "return_requested_at": p.return_requested_at,
        "returned_at": p.returned_at,
        "sold_at": p.sold_at,
    }


def serialize_request(r):
    return {
        "id": r.id,
        "marketer_id": r.marketer_id,
        "status": r.status,
        "note": r.note,
        "reviewed_at": r.reviewed_at,
        "next_request_allowed_at": r.next_request_allowed_at,
        "created_at": r.created_at,
    }


class PickupListCreateView(ChannelAPIView):
    """
    GET  /api/v1/pickups/?status=
    POST /api/v1/pickups/   Body: {"product_id": 12, "quantity": 1}
    """

    def get(self, request):
        actor = self.get_actor(request)
        status_f = (request.GET.get("status") or "").strip()
        if status_f and status_f not in PickupStatus.values:
            raise ValidationFailed(f"Unknown status {status_f}", field="status")
        now = timezone.now()
        rows = [serialize_pickup(p, now) for p in pickups_for(actor, status=status_f or None)[:200]]
        return Response({"results": rows, "count": len(rows)}, status=200)

    def post(self, request):
        actor = self.get_actor(request)
        product_id = positive_int(request.data, "product_id")
        quantity = positive_int(request.data, "quantity", default=1)
        pickup = create_pickup(actor, product_id, quantity=quantity)
        return Response(serialize_pickup(pickup), status=201)


class BulkPickupView(ChannelAPIView):
    """POST /api/v1/pickups/bulk   Body: {"product_id": 12, "quantity": 3}"""

    def post(self, request):
        actor = self.get_actor(request)
        product_id = positive_int(request.data, "product_id")
        quantity = positive_int(request.data, "quantity")
        pickup = create_bulk_pickup(actor, product_id, quantity)
        return Response(serialize_pickup(pickup), status=201)


class ReturnRequestView(ChannelAPIView):
    """POST /api/v1/pickups/<id>/return"""

    def post(self, request, pk):
        pickup = request_return(self.get_actor(request), pk)
        return Response(serialize_pickup(pickup), status=200)


class ReturnConfirmView(ChannelAPIView):
    """POST /api/v1/pickups/<id>/return/confirm   (MasterAdmin)"""

    def post(self, request, pk):
        pickup = confirm_return(self.get_actor(request), pk)
        return Response(serialize_pickup(pickup), status=200)


class TransferRequestView(ChannelAPIView):
    """POST /api/v1/pickups/<id>/transfer   Body: {"target_id": 7, "reason": "..."}"""

    def post(self, request, pk):
        actor = self.get_actor(request)
        target_id = positive_int(request.data, "target_id")
        reason = (request.data.get("reason") or "").strip()
        pickup = request_transfer(actor, pk, target_id, reason)
        return Response(serialize_pickup(pickup), status=200)


class TransferReviewView(ChannelAPIView):
    """POST /api/v1/pickups/<id>/transfer/review   Body: {"action": "approve" | "reject"}"""

    def post(self, request, pk):
        actor = self.get_actor(request)
        action = review_action(request.data)
        pickup, successor = review_transfer(actor, pk, action)
        data = serialize_pickup(pickup)
        data["successor"] = serialize_pickup(successor) if successor else None
        data["message"] = f"Transfer {action}d successfully."
        return Response(data, status=200)


class AllowanceView(ChannelAPIView):
    """GET /api/v1/pickups/allowance"""

    def get(self, request):
        actor = self.get_actor(request)
        return Response({"allowance": get_allowance(actor.profile)}, status=200)


class AdditionalPickupRequestView(ChannelAPIView):
    """
    GET  /api/v1/pickups/additional-requests   eligibility of the caller
    POST /api/v1/pickups/additional-requests   Body: {"note": "..."}
    """

    def get(self, request):
        actor = self.get_actor(request)
        return Response(check_eligibility(actor.profile), status=200)

    def post(self, request):
        actor = self.get_actor(request)
        req = request_additional_pickup(actor, note=(request.data.get("note") or "").strip())
        return Response(serialize_request(req), status=201)


class AdditionalPickupReviewView(ChannelAPIView):
    """POST /api/v1/pickups/additional-requests/<id>/review   Body: {"action": "approve" | "reject"}"""

    def post(self, request, pk):
        actor = self.get_actor(request)
        req = review_additional_request(actor, pk, review_action(request.data))
        return Response(serialize_request(req), status=200)


class PendingConfirmationsView(ChannelAPIView):
    """
    GET /api/v1/pickups/pending-confirmations
    Orders, returns, transfers and additional pickup requests waiting for a
    MasterAdmin.
    """
    permission_classes = ChannelAPIView.permission_classes + [IsMasterAdmin]

    def get(self, request):
        queues = pending_confirmations()
        now = timezone.now()
        orders = [{
            "id": o.id,
            "pickup_id": o.pickup_id,
            "marketer_id": o.marketer_id,
            "marketer_name": o.marketer.display_name,
            "device_name": o.product.device_name,
            "number_of_devices": o.number_of_devices,
            "sold_amount": str(o.sold_amount),
            "customer_name": o.customer_name,
            "created_at": o.created_at,
        } for o in pending_orders()]
        return Response({
            "orders": orders,
            "returns": [serialize_pickup(p, now) for p in queues["returns"]],
            "transfers": [serialize_pickup(p, now) for p in queues["transfers"]],
            "additional_requests": [serialize_request(r) for r in queues["additional_requests"]],
        }, status=200)
