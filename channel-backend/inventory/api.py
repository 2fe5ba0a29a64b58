# channel-backend/inventory/api.py
from rest_framework.response import Response

from common.api_mixins import ChannelAPIView
from common.exceptions import NotFound, ValidationFailed
from common.roles import ChannelRole

from .ledger import add_units
from .models import InventoryUnit, InventoryMovement


class ProductUnitsView(ChannelAPIView):
    """
    GET  /api/v1/inventory/products/<id>/units?status=
    POST /api/v1/inventory/products/<id>/units   Body: {"imeis": ["3560...", ...], "note": ""}
    """

    def get(self, request, pk):
        actor = self.get_actor(request)
        qs = InventoryUnit.objects.filter(product_id=pk).order_by("id")
        if actor.role == ChannelRole.DEALER:
            qs = qs.filter(product__dealer_id=actor.id)
        elif actor.role != ChannelRole.MASTER_ADMIN:
            raise NotFound(f"Product {pk} not found")

        status_f = (request.GET.get("status") or "").strip()
        if status_f:
            if status_f not in InventoryUnit.Status.values:
                raise ValidationFailed(f"Unknown status {status_f}", field="status")
            qs = qs.filter(status=status_f)

        data = [{
            "id": u.id,
            "imei": u.imei,
            "status": u.status,
            "pickup_id": u.pickup_id,
            "order_id": u.order_id,
        } for u in qs]
        return Response({"results": data, "count": len(data)}, status=200)

    def post(self, request, pk):
        actor = self.get_actor(request)
        imeis = request.data.get("imeis")
        if not isinstance(imeis, list):
            raise ValidationFailed("imeis must be a list", field="imeis")
        units = add_units(actor, pk, imeis, note=(request.data.get("note") or "").strip())
        return Response({"created": len(units)}, status=201)


class ProductMovementsView(ChannelAPIView):
    """GET /api/v1/inventory/products/<id>/movements   (MasterAdmin)"""

    def get(self, request, pk):
        actor = self.get_actor(request)
        if actor.role != ChannelRole.MASTER_ADMIN:
            raise NotFound(f"Product {pk} not found")
        rows = InventoryMovement.objects.filter(product_id=pk).order_by("-created_at", "-id")[:500]
        data = [{
            "id": m.id,
            "kind": m.kind,
            "quantity": m.quantity,
            "on_hand_delta": m.on_hand_delta,
            "balance_after": m.balance_after,
            "pickup_id": m.pickup_id,
            "order_id": m.order_id,
            "unit_ids": m.unit_ids,
            "note": m.note,
            "created_at": m.created_at,
        } for m in rows]
        return Response({"results": data, "count": len(data)}, status=200)
