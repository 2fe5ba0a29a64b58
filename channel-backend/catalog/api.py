# channel-backend/catalog/api.py
from rest_framework.response import Response

from common.api_mixins import ChannelAPIView

from .selectors import dealers_in_location, products_for_pickup


class DealerListView(ChannelAPIView):
    """
    GET /api/v1/catalog/dealers
    Dealers in the caller's own location.
    """

    def get(self, request):
        actor = self.get_actor(request)
        data = [{
            "id": d.id,
            "unique_id": d.unique_id,
            "business_name": d.business_name or d.display_name,
            "location": d.location,
            "phone": d.phone,
            "product_count": d.product_count,
        } for d in dealers_in_location(actor.profile.location)]
        return Response({"results": data, "count": len(data)}, status=200)


class DealerProductListView(ChannelAPIView):
    """
    GET /api/v1/catalog/products?dealer_id=&in_stock=1
    Products the caller may pick up, with available unit counts.
    """

    def get(self, request):
        actor = self.get_actor(request)
        dealer_id = request.GET.get("dealer_id")
        try:
            dealer_id = int(dealer_id) if dealer_id else None
        except (TypeError, ValueError):
            dealer_id = None

        qs = products_for_pickup(actor.profile.location, dealer_id=dealer_id)
        if request.GET.get("in_stock") in ("1", "true"):
            qs = qs.filter(available_units__gt=0)

        data = [{
            "id": p.id,
            "dealer_id": p.dealer_id,
            "dealer_name": p.dealer.business_name or p.dealer.display_name,
            "device_name": p.device_name,
            "device_model": p.device_model,
            "device_type": p.device_type,
            "selling_price": str(p.selling_price),
            "available_units": p.available_units,
        } for p in qs]
        return Response({"results": data, "count": len(data)}, status=200)
