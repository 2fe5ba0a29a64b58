# channel-backend/catalog/selectors.py
from django.db.models import Count, Q

from accounts.models import ChannelUser
from common.roles import ChannelRole
from inventory.models import InventoryUnit

from .models import Product


def dealers_in_location(location):
    """Dealers a marketer in ``location`` may pick stock from."""
    return (
        ChannelUser.objects.filter(role=ChannelRole.DEALER, location=location, is_locked=False)
        .annotate(product_count=Count("products", filter=Q(products__is_active=True)))
        .order_by("business_name", "id")
    )


def products_for_pickup(location, dealer_id=None):
    """Active products of same-location dealers with their available unit counts."""
    qs = (
        Product.objects.filter(is_active=True, dealer__location=location, dealer__role=ChannelRole.DEALER)
        .select_related("dealer")
        .annotate(available_units=Count("units", filter=Q(units__status=InventoryUnit.Status.AVAILABLE)))
        .order_by("device_name", "id")
    )
    if dealer_id:
        qs = qs.filter(dealer_id=dealer_id)
    return qs
