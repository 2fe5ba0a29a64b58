"""
Order placement, confirmation and cancellation against reserved pickups.
"""
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from commissions.models import CommissionCredit, CommissionRate, Wallet
from common.exceptions import (
    AuthorizationDenied,
    InsufficientQuantity,
    NoActivePickup,
    NotFound,
    NotPending,
    ValidationFailed,
)
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from inventory.models import InventoryMovement, InventoryUnit
from notifications.models import Notification
from orders.api import OrderCancelView, OrderConfirmView, OrderListCreateView
from orders.models import Order, OrderStatus
from orders.services import cancel_order, confirm_order, place_order
from pickups.allowance import request_additional_pickup, review_additional_request
from pickups.models import PickupStatus
from pickups.services import create_pickup


CUSTOMER = {"name": "Ada Obi", "phone": "08030000000", "address": "12 Allen Ave"}


class OrderFlowTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        CommissionRate.objects.create(
            device_type="smartphone",
            marketer_amount=Decimal("2000.00"),
            admin_amount=Decimal("500.00"),
            super_admin_amount=Decimal("250.00"),
        )
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)

    def test_place_order_keeps_unit_reserved(self):
        with self.captureOnCommitCallbacks(execute=True):
            order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)

        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.sold_amount, Decimal("150000"))
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.PENDING_ORDER)
        unit = InventoryUnit.objects.get(pickup=self.pickup)
        self.assertEqual(unit.status, InventoryUnit.Status.RESERVED)
        self.assertEqual(unit.order_id, order.id)
        self.assertFalse(CommissionCredit.objects.exists())
        self.assertTrue(Notification.objects.filter(recipient=self.master, event_type="order_placed").exists())

    def test_confirm_sells_and_credits_once(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)

        with self.captureOnCommitCallbacks(execute=True):
            order = confirm_order(Actor(self.master), order.id, pickup_id=self.pickup.id)

        self.assertEqual(order.status, OrderStatus.RELEASED_CONFIRMED)
        self.assertTrue(order.commission_paid)
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.SOLD)
        self.assertIsNotNone(self.pickup.sold_at)
        self.assertEqual(InventoryUnit.objects.get(pickup=self.pickup).status, InventoryUnit.Status.SOLD)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 4)

        credits = CommissionCredit.objects.filter(order=order)
        self.assertEqual(credits.filter(beneficiary_role="marketer").count(), 1)
        self.assertEqual(credits.count(), 3)
        self.assertEqual(Wallet.objects.get(owner=self.marketer).balance, Decimal("2000.00"))
        self.assertEqual(Wallet.objects.get(owner=self.admin).balance, Decimal("500.00"))
        self.assertEqual(Wallet.objects.get(owner=self.super_admin).balance, Decimal("250.00"))
        self.assertTrue(Notification.objects.filter(recipient=self.marketer, event_type="order_confirmed").exists())

    def test_second_confirmation_changes_nothing(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        confirm_order(Actor(self.master), order.id)

        with self.assertRaises(NotPending):
            confirm_order(Actor(self.master), order.id)
        self.assertEqual(CommissionCredit.objects.filter(order=order).count(), 3)
        self.assertEqual(Wallet.objects.get(owner=self.marketer).balance, Decimal("2000.00"))

    def test_only_master_admin_confirms(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        for profile in (self.marketer, self.admin, self.super_admin):
            with self.assertRaises(AuthorizationDenied):
                confirm_order(Actor(profile), order.id)

    def test_confirm_with_wrong_pickup(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        with self.assertRaises(NotFound):
            confirm_order(Actor(self.master), order.id, pickup_id=self.pickup.id + 100)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PENDING)

    def test_cancel_releases_units_and_reopens_pickup(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)

        with self.captureOnCommitCallbacks(execute=True):
            order = cancel_order(Actor(self.marketer), order.id, reason="Customer changed mind")

        self.assertEqual(order.status, OrderStatus.CANCELLED)
        self.assertEqual(order.cancel_reason, "Customer changed mind")
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.PENDING)
        self.assertEqual(InventoryUnit.objects.filter(status="available").count(), 5)
        self.assertFalse(InventoryUnit.objects.filter(pickup=self.pickup).exists())
        self.assertTrue(
            InventoryMovement.objects.filter(pickup=self.pickup, kind=InventoryMovement.Kind.RELEASE, quantity=1).exists()
        )
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 5)
        self.assertTrue(Notification.objects.filter(event_type="order_cancelled").exists())

        out = StringIO()
        call_command("inventory_check", stdout=out)
        self.assertIn("clean", out.getvalue())

        # cancelling twice is harmless; the emptied pickup cannot take another order
        cancel_order(Actor(self.marketer), order.id)
        self.assertEqual(InventoryMovement.objects.filter(kind=InventoryMovement.Kind.RELEASE).count(), 1)
        with self.assertRaises(InsufficientQuantity):
            place_order(Actor(self.marketer), self.pickup.id, 1, "140000", CUSTOMER)
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.PENDING)

    def test_cancel_rules(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        with self.assertRaises(NotFound):
            cancel_order(Actor(self.marketer_b), order.id)
        with self.assertRaises(NotFound):
            cancel_order(Actor(self.marketer), 987654)

        cancel_order(Actor(self.master), order.id)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.CANCELLED)

        other = create_pickup(Actor(self.marketer_b), self.product.id)
        second = place_order(Actor(self.marketer_b), other.id, 1, "150000", CUSTOMER)
        confirm_order(Actor(self.master), second.id)
        with self.assertRaises(NotPending):
            cancel_order(Actor(self.marketer_b), second.id)
        self.assertEqual(InventoryUnit.objects.get(order=second).status, InventoryUnit.Status.SOLD)


class PlaceOrderErrorTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)

    def test_more_devices_than_picked_up(self):
        with self.assertRaises(InsufficientQuantity):
            place_order(Actor(self.marketer), self.pickup.id, 2, "300000", CUSTOMER)
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.PENDING)
        self.assertFalse(Order.objects.exists())

    def test_someone_elses_pickup(self):
        with self.assertRaises(NoActivePickup):
            place_order(Actor(self.marketer_b), self.pickup.id, 1, "150000", CUSTOMER)

    def test_unknown_pickup(self):
        with self.assertRaises(NoActivePickup):
            place_order(Actor(self.marketer), 424242, 1, "150000", CUSTOMER)

    def test_one_order_per_pickup_at_a_time(self):
        place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        with self.assertRaises(NoActivePickup):
            place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)

    def test_past_deadline(self):
        self.expire_deadline(self.pickup, hours=0)
        with self.assertRaises(NoActivePickup) as ctx:
            place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        self.assertIn("deadline", ctx.exception.message)

    def test_bad_input(self):
        with self.assertRaises(ValidationFailed):
            place_order(Actor(self.marketer), self.pickup.id, 1, "lots", CUSTOMER)
        with self.assertRaises(ValidationFailed):
            place_order(Actor(self.marketer), self.pickup.id, 1, "-5", CUSTOMER)
        with self.assertRaises(ValidationFailed):
            place_order(Actor(self.marketer), self.pickup.id, 1, "150000", {"name": "Ada", "phone": " "})


class BulkOrderTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        req = request_additional_pickup(Actor(self.marketer))
        review_additional_request(Actor(self.master), req.id, "approve")
        self.pickup = create_pickup(Actor(self.marketer), self.product.id, quantity=3)

    def test_partial_sale_releases_the_rest(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 2, "300000", CUSTOMER)
        confirm_order(Actor(self.master), order.id)

        self.assertEqual(InventoryUnit.objects.filter(order=order, status="sold").count(), 2)
        self.assertEqual(InventoryUnit.objects.filter(status="available").count(), 3)
        self.assertFalse(InventoryUnit.objects.filter(status="reserved").exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 3)

        out = StringIO()
        call_command("inventory_check", stdout=out)
        self.assertIn("clean", out.getvalue())

    def test_no_rate_still_confirms(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 3, "450000", CUSTOMER)
        with self.assertLogs("commissions", level="WARNING"):
            order = confirm_order(Actor(self.master), order.id)
        self.assertEqual(order.status, OrderStatus.RELEASED_CONFIRMED)
        self.assertFalse(CommissionCredit.objects.exists())


class OrderApiTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)

    def test_place_confirm_cancel(self):
        payload = {
            "pickup_id": self.pickup.id,
            "number_of_devices": 1,
            "sold_amount": "150000.00",
            "customer_name": "Ada Obi",
            "customer_phone": "0803",
        }
        res = self.api(OrderListCreateView, "POST", "/api/v1/orders/", self.marketer, payload)
        self.assertEqual(res.status_code, 201)
        order_id = res.data["id"]

        res = self.api(OrderListCreateView, "POST", "/api/v1/orders/", self.marketer, payload)
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["code"], "no_active_pickup")

        res = self.api(OrderConfirmView, "POST", "/", self.marketer, {}, pk=order_id)
        self.assertEqual(res.status_code, 403)

        res = self.api(OrderConfirmView, "POST", "/", self.master, {"pickup_id": self.pickup.id}, pk=order_id)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "released_confirmed")

        res = self.api(OrderConfirmView, "POST", "/", self.master, {}, pk=order_id)
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "not_pending")

        res = self.api(OrderCancelView, "POST", "/", self.marketer, {}, pk=order_id)
        self.assertEqual(res.status_code, 409)

    def test_missing_amount(self):
        res = self.api(
            OrderListCreateView, "POST", "/api/v1/orders/", self.marketer,
            {"pickup_id": self.pickup.id, "customer_name": "Ada", "customer_phone": "0803"},
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["field"], "sold_amount")

    def test_listing(self):
        place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        res = self.api(OrderListCreateView, "GET", "/api/v1/orders/", self.marketer, {"status": "pending"})
        self.assertEqual(res.data["count"], 1)
        res = self.api(OrderListCreateView, "GET", "/api/v1/orders/", self.marketer_b)
        self.assertEqual(res.data["count"], 0)
