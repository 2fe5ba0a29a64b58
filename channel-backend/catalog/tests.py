from django.test import TestCase

from catalog.api import DealerListView, DealerProductListView
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from pickups.services import create_pickup


class PickupCatalogTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=2)
        self.far_dealer = self.make_user("DL777", "Dealer", location="Abuja")
        self.make_product(self.far_dealer, units=4)
        self.empty = self.make_product(self.dealer, units=0)

    def test_dealers_are_limited_to_caller_location(self):
        res = self.api(DealerListView, "GET", "/api/v1/catalog/dealers", self.marketer)
        self.assertEqual([d["id"] for d in res.data["results"]], [self.dealer.id])
        self.assertEqual(res.data["results"][0]["product_count"], 2)

    def test_products_show_available_units(self):
        create_pickup(Actor(self.marketer), self.product.id)

        res = self.api(DealerProductListView, "GET", "/api/v1/catalog/products", self.marketer)
        counts = {p["id"]: p["available_units"] for p in res.data["results"]}
        self.assertEqual(counts, {self.product.id: 1, self.empty.id: 0})

        res = self.api(DealerProductListView, "GET", "/api/v1/catalog/products", self.marketer, {"in_stock": "1"})
        self.assertEqual([p["id"] for p in res.data["results"]], [self.product.id])

    def test_filter_by_dealer(self):
        res = self.api(
            DealerProductListView, "GET", "/api/v1/catalog/products", self.marketer,
            {"dealer_id": str(self.far_dealer.id)},
        )
        self.assertEqual(res.data["count"], 0)
