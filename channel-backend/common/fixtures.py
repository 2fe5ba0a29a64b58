# channel-backend/common/fixtures.py
"""
Test helpers shared by the app test suites: a small channel network with a
stocked dealer product.
"""
import itertools
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import ChannelUser
from catalog.models import Product
from common.policy import Actor
from common.roles import ChannelRole

_imei_seq = itertools.count(1)


class ChannelFixturesMixin:
    location = "Ikeja"

    def make_user(self, unique_id, role, location=None, admin=None, super_admin=None):
        user = get_user_model().objects.create_user(
            username=unique_id.lower(),
            email=f"{unique_id.lower()}@example.com",
            password="test-pass",
        )
        return ChannelUser.objects.create(
            user=user,
            unique_id=unique_id,
            role=role,
            name=f"{role} {unique_id}",
            location=location or self.location,
            admin=admin,
            super_admin=super_admin,
        )

    def build_network(self, units=5):
        self.factory = APIRequestFactory()
        self.super_admin = self.make_user("SA001", ChannelRole.SUPER_ADMIN)
        self.admin = self.make_user("AD001", ChannelRole.ADMIN, super_admin=self.super_admin)
        self.marketer = self.make_user("MK001", ChannelRole.MARKETER, admin=self.admin, super_admin=self.super_admin)
        self.marketer_b = self.make_user("MK002", ChannelRole.MARKETER, admin=self.admin, super_admin=self.super_admin)
        self.master = self.make_user("MA001", ChannelRole.MASTER_ADMIN, location="HQ")
        self.dealer = self.make_user("DL001", ChannelRole.DEALER)
        self.product = self.make_product(self.dealer, units=units)

    def make_product(self, dealer, units=5, device_type="smartphone"):
        product = Product.objects.create(
            dealer=dealer,
            device_name="Galaxy",
            device_model="A15",
            device_type=device_type,
            selling_price="150000.00",
            cost_price="120000.00",
        )
        if units:
            self.stock(product, units)
        return product

    def stock(self, product, count):
        from inventory.ledger import add_units

        imeis = [f"35{next(_imei_seq):013d}" for _ in range(count)]
        add_units(Actor(product.dealer), product.id, imeis)
        product.refresh_from_db()
        return imeis

    def actor(self, profile):
        return Actor(profile)

    def expire_deadline(self, pickup, hours=1):
        from pickups.models import Pickup

        past = timezone.now() - timedelta(hours=hours)
        Pickup.objects.filter(pk=pickup.pk).update(deadline=past)
        pickup.refresh_from_db()
        return pickup

    def api(self, view, method, path, profile, data=None, **kwargs):
        """Call a view with an authenticated request the way the router would."""
        if method == "GET":
            request = self.factory.get(path, data or {})
        else:
            request = self.factory.post(path, data or {}, format="json")
        force_authenticate(request, user=profile.user)
        return view.as_view()(request, **kwargs)
