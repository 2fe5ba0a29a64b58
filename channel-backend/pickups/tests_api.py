from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import force_authenticate

from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from orders.services import place_order
from pickups.api import (
    AdditionalPickupRequestView,
    AdditionalPickupReviewView,
    AllowanceView,
    BulkPickupView,
    PendingConfirmationsView,
    PickupListCreateView,
    ReturnConfirmView,
    ReturnRequestView,
    TransferRequestView,
    TransferReviewView,
)
from pickups.allowance import request_additional_pickup
from pickups.models import PickupStatus
from pickups.services import create_pickup


class PickupApiTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)

    def test_create_then_conflict(self):
        res = self.api(PickupListCreateView, "POST", "/api/v1/pickups/", self.marketer, {"product_id": self.product.id})
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["status"], "pending")
        self.assertEqual(res.data["status_label"], "Pending")
        self.assertEqual(res.data["quantity"], 1)

        res = self.api(PickupListCreateView, "POST", "/api/v1/pickups/", self.marketer, {"product_id": self.product.id})
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "active_stock_exists")
        self.assertEqual(res.data["active_status"], "pending")

    def test_create_validates_input_first(self):
        res = self.api(PickupListCreateView, "POST", "/api/v1/pickups/", self.marketer, {})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["field"], "product_id")

        res = self.api(
            PickupListCreateView, "POST", "/api/v1/pickups/", self.marketer,
            {"product_id": self.product.id, "quantity": 0},
        )
        self.assertEqual(res.status_code, 400)

    def test_out_of_stock_is_conflict(self):
        empty = self.make_product(self.dealer, units=0)
        res = self.api(PickupListCreateView, "POST", "/api/v1/pickups/", self.marketer, {"product_id": empty.id})
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "insufficient_stock")
        self.assertEqual(res.data["available"], 0)

    def test_user_without_profile_is_forbidden(self):
        user = get_user_model().objects.create_user(username="plain", password="x")
        request = self.factory.get("/api/v1/pickups/")
        force_authenticate(request, user=user)
        res = PickupListCreateView.as_view()(request)
        self.assertEqual(res.status_code, 403)

    def test_listing_is_scoped_to_caller(self):
        create_pickup(Actor(self.marketer), self.product.id)
        create_pickup(Actor(self.marketer_b), self.product.id)

        res = self.api(PickupListCreateView, "GET", "/api/v1/pickups/", self.marketer)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["marketer_id"], self.marketer.id)

        res = self.api(PickupListCreateView, "GET", "/api/v1/pickups/", self.master, {"status": "pending"})
        self.assertEqual(res.data["count"], 2)

        res = self.api(PickupListCreateView, "GET", "/api/v1/pickups/", self.master, {"status": "bogus"})
        self.assertEqual(res.status_code, 400)

    def test_overdue_pickup_listed_as_expired(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        self.expire_deadline(pickup)
        res = self.api(PickupListCreateView, "GET", "/api/v1/pickups/", self.marketer)
        row = res.data["results"][0]
        self.assertEqual(row["status"], PickupStatus.PENDING)
        self.assertEqual(row["status_label"], "Expired")

    def test_return_round_trip(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        path = f"/api/v1/pickups/{pickup.id}/return"

        res = self.api(ReturnRequestView, "POST", path, self.marketer, pk=pickup.id)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "return_pending")

        res = self.api(ReturnConfirmView, "POST", path + "/confirm", self.admin, pk=pickup.id)
        self.assertEqual(res.status_code, 403)

        res = self.api(ReturnConfirmView, "POST", path + "/confirm", self.master, pk=pickup.id)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "returned")

        res = self.api(ReturnConfirmView, "POST", path + "/confirm", self.master, pk=pickup.id)
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "illegal_transition")

    def test_missing_pickup_is_404(self):
        res = self.api(ReturnRequestView, "POST", "/api/v1/pickups/999/return", self.marketer, pk=999)
        self.assertEqual(res.status_code, 404)

    def test_transfer_round_trip(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        res = self.api(
            TransferRequestView, "POST", f"/api/v1/pickups/{pickup.id}/transfer", self.marketer,
            {"target_id": self.marketer_b.id, "reason": "Sick leave"}, pk=pickup.id,
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["transfer_to_id"], self.marketer_b.id)

        res = self.api(
            TransferReviewView, "POST", f"/api/v1/pickups/{pickup.id}/transfer/review", self.master,
            {"action": "maybe"}, pk=pickup.id,
        )
        self.assertEqual(res.status_code, 400)

        res = self.api(
            TransferReviewView, "POST", f"/api/v1/pickups/{pickup.id}/transfer/review", self.master,
            {"action": "approve"}, pk=pickup.id,
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "transfer_approved")
        self.assertEqual(res.data["successor"]["marketer_id"], self.marketer_b.id)
        self.assertEqual(res.data["message"], "Transfer approved successfully.")

    def test_allowance_and_additional_requests(self):
        res = self.api(AllowanceView, "GET", "/api/v1/pickups/allowance", self.marketer)
        self.assertEqual(res.data, {"allowance": 1})

        res = self.api(AdditionalPickupRequestView, "POST", "/api/v1/pickups/additional-requests", self.marketer, {"note": "x"})
        self.assertEqual(res.status_code, 201)
        request_id = res.data["id"]

        res = self.api(AdditionalPickupRequestView, "GET", "/api/v1/pickups/additional-requests", self.marketer)
        self.assertFalse(res.data["eligible"])
        self.assertEqual(res.data["open_request_id"], request_id)

        res = self.api(
            AdditionalPickupReviewView, "POST", f"/api/v1/pickups/additional-requests/{request_id}/review",
            self.master, {"action": "approve"}, pk=request_id,
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "approved")

        res = self.api(BulkPickupView, "POST", "/api/v1/pickups/bulk", self.marketer, {"product_id": self.product.id, "quantity": 3})
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["quantity"], 3)

    def test_pending_confirmations_queue(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        order = place_order(Actor(self.marketer), pickup.id, 1, "150000", {"name": "Ada", "phone": "0803"})
        other = create_pickup(Actor(self.marketer_b), self.product.id)
        self.api(ReturnRequestView, "POST", "/", self.marketer_b, pk=other.id)
        extra = request_additional_pickup(Actor(self.admin), note="Weekend market")

        res = self.api(PendingConfirmationsView, "GET", "/api/v1/pickups/pending-confirmations", self.marketer)
        self.assertEqual(res.status_code, 403)

        res = self.api(PendingConfirmationsView, "GET", "/api/v1/pickups/pending-confirmations", self.master)
        self.assertEqual(res.status_code, 200)
        self.assertEqual([o["id"] for o in res.data["orders"]], [order.id])
        self.assertEqual([p["id"] for p in res.data["returns"]], [other.id])
        self.assertEqual(res.data["transfers"], [])
        self.assertEqual([r["id"] for r in res.data["additional_requests"]], [extra.id])
        self.assertEqual(res.data["additional_requests"][0]["marketer_id"], self.admin.id)


class HierarchyListingTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        self.other_admin = self.make_user("AD002", "Admin", super_admin=self.super_admin)
        self.stray = self.make_user("MK003", "Marketer", admin=self.other_admin)
        self.outsider = self.make_user("MK004", "Marketer")
        self.mine = create_pickup(Actor(self.marketer), self.product.id)
        self.team = create_pickup(Actor(self.marketer_b), self.product.id)
        self.stray_pickup = create_pickup(Actor(self.stray), self.product.id)
        self.outside = create_pickup(Actor(self.outsider), self.product.id)

    def listed(self, profile):
        res = self.api(PickupListCreateView, "GET", "/api/v1/pickups/", profile)
        self.assertEqual(res.status_code, 200)
        return {p["id"] for p in res.data["results"]}

    def test_admin_sees_own_marketers(self):
        own = create_pickup(Actor(self.admin), self.product.id)
        self.assertEqual(self.listed(self.admin), {own.id, self.mine.id, self.team.id})
        self.assertEqual(self.listed(self.other_admin), {self.stray_pickup.id})

    def test_super_admin_sees_whole_hierarchy(self):
        self.assertEqual(self.listed(self.super_admin), {self.mine.id, self.team.id, self.stray_pickup.id})

    def test_marketer_sees_only_own(self):
        self.assertEqual(self.listed(self.marketer_b), {self.team.id})
