"""
Inventory tests: unit intake, the reservation allocator and the
conservation audit command.
"""
import threading
import unittest
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from common.exceptions import InsufficientStock, ValidationFailed, AuthorizationDenied, NotFound
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from inventory import allocator
from inventory.api import ProductMovementsView, ProductUnitsView
from inventory.ledger import add_units
from inventory.models import InventoryUnit, InventoryMovement
from pickups.deadlines import deadline_from
from pickups.models import Pickup
from pickups.services import create_pickup


class AddUnitsTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=0)

    def test_receipt_creates_available_units_and_movement(self):
        add_units(Actor(self.dealer), self.product.id, ["111", "222", "333"])

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 3)
        self.assertEqual(
            InventoryUnit.objects.filter(product=self.product, status=InventoryUnit.Status.AVAILABLE).count(), 3
        )
        movement = InventoryMovement.objects.get(product=self.product)
        self.assertEqual(movement.kind, InventoryMovement.Kind.RECEIPT)
        self.assertEqual(movement.on_hand_delta, 3)
        self.assertEqual(movement.balance_after, 3)
        self.assertEqual(len(movement.unit_ids), 3)

    def test_duplicate_and_known_imeis_rejected(self):
        with self.assertRaises(ValidationFailed):
            add_units(Actor(self.dealer), self.product.id, ["111", "111"])
        add_units(Actor(self.dealer), self.product.id, ["111"])
        with self.assertRaises(ValidationFailed) as ctx:
            add_units(Actor(self.dealer), self.product.id, ["111", "444"])
        self.assertEqual(ctx.exception.details["existing"], ["111"])
        self.assertEqual(InventoryUnit.objects.count(), 1)

    def test_other_dealer_cannot_stock_product(self):
        other = self.make_user("DL002", "Dealer")
        with self.assertRaises(NotFound):
            add_units(Actor(other), self.product.id, ["999"])

    def test_marketer_cannot_receive_stock(self):
        with self.assertRaises(AuthorizationDenied):
            add_units(Actor(self.marketer), self.product.id, ["999"])


class AllocatorTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=2)

    def _bare_pickup(self, marketer, quantity):
        now = timezone.now()
        return Pickup.objects.create(
            marketer=marketer,
            product=self.product,
            quantity=quantity,
            reserved_count=quantity,
            deadline=deadline_from(now),
        )

    def test_reserve_claims_exact_units(self):
        pickup = self._bare_pickup(self.marketer, 2)
        ids = allocator.reserve_units(pickup, 2)

        self.assertEqual(len(ids), 2)
        self.assertEqual(
            set(InventoryUnit.objects.filter(pickup=pickup, status="reserved").values_list("id", flat=True)),
            set(ids),
        )
        self.assertEqual(allocator.available_count(self.product.id), 0)

    def test_reserve_is_all_or_nothing(self):
        pickup = self._bare_pickup(self.marketer, 3)
        with self.assertRaises(InsufficientStock) as ctx:
            allocator.reserve_units(pickup, 3)

        self.assertEqual(ctx.exception.details, {"requested": 3, "available": 2})
        self.assertEqual(allocator.available_count(self.product.id), 2)
        self.assertFalse(InventoryUnit.objects.filter(pickup=pickup).exists())
        self.assertFalse(InventoryMovement.objects.filter(kind="RESERVE").exists())

    def test_failed_pickup_creation_leaves_no_trace(self):
        empty = self.make_product(self.dealer, units=0)
        with self.assertRaises(InsufficientStock):
            create_pickup(Actor(self.marketer), empty.id)
        self.assertFalse(Pickup.objects.filter(marketer=self.marketer).exists())

    def test_release_is_idempotent(self):
        pickup = self._bare_pickup(self.marketer, 2)
        allocator.reserve_units(pickup, 2)

        released = allocator.release_units(pickup)
        self.assertEqual(len(released), 2)
        self.assertEqual(allocator.release_units(pickup), [])
        self.assertEqual(allocator.available_count(self.product.id), 2)
        self.assertEqual(InventoryUnit.objects.filter(pickup=pickup).count(), 0)
        self.assertEqual(InventoryMovement.objects.filter(pickup=pickup, kind="RELEASE").count(), 1)

    def test_second_pickup_gets_different_units(self):
        first = self._bare_pickup(self.marketer, 1)
        second = self._bare_pickup(self.marketer_b, 1)
        a = allocator.reserve_units(first, 1)
        b = allocator.reserve_units(second, 1)
        self.assertNotEqual(a, b)
        with self.assertRaises(InsufficientStock):
            third = self._bare_pickup(self.admin, 1)
            allocator.reserve_units(third, 1)


class InventoryCheckCommandTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=3)

    def test_clean_after_lifecycle(self):
        create_pickup(Actor(self.marketer), self.product.id)
        out = StringIO()
        call_command("inventory_check", stdout=out)
        self.assertIn("clean", out.getvalue())

    def test_detects_lost_unit(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        # a unit silently dropped from the pickup outside the allocator
        InventoryUnit.objects.filter(pickup=pickup).update(pickup=None, status="available")

        out = StringIO()
        with self.assertRaises(CommandError):
            call_command("inventory_check", stdout=out)
        self.assertIn(f"pickup {pickup.id}", out.getvalue())

    def test_unknown_product(self):
        with self.assertRaises(CommandError):
            call_command("inventory_check", product=999999, stdout=StringIO())


@unittest.skipUnless(
    connection.features.has_select_for_update_skip_locked,
    "needs SELECT ... FOR UPDATE SKIP LOCKED",
)
class ConcurrentAllocationTests(ChannelFixturesMixin, TransactionTestCase):
    """Many marketers racing for the same product never share a unit."""

    def setUp(self):
        self.build_network(units=3)
        self.racers = [self.marketer, self.marketer_b] + [
            self.make_user(f"MK1{i:02d}", "Marketer") for i in range(4)
        ]

    def test_no_double_allocation(self):
        results, errors = [], []
        barrier = threading.Barrier(len(self.racers))

        def attempt(profile):
            try:
                barrier.wait()
                pickup = create_pickup(Actor(profile), self.product.id)
                results.append(pickup.id)
            except InsufficientStock as exc:
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(p,)) for p in self.racers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(results), 3)
        self.assertEqual(len(errors), len(self.racers) - 3)
        reserved = list(InventoryUnit.objects.filter(status="reserved").values_list("pickup_id", flat=True))
        self.assertEqual(len(reserved), 3)
        self.assertEqual(len(set(reserved)), 3)


class InventoryApiTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=2)

    def test_dealer_receives_and_lists_units(self):
        path = f"/api/v1/inventory/products/{self.product.id}/units"
        res = self.api(ProductUnitsView, "POST", path, self.dealer, {"imeis": ["990001", "990002"]}, pk=self.product.id)
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data, {"created": 2})

        res = self.api(ProductUnitsView, "GET", path, self.dealer, {"status": "available"}, pk=self.product.id)
        self.assertEqual(res.data["count"], 4)

        res = self.api(ProductUnitsView, "POST", path, self.dealer, {"imeis": "990003"}, pk=self.product.id)
        self.assertEqual(res.status_code, 400)

    def test_marketers_do_not_see_units_or_movements(self):
        path = f"/api/v1/inventory/products/{self.product.id}/units"
        res = self.api(ProductUnitsView, "GET", path, self.marketer, pk=self.product.id)
        self.assertEqual(res.status_code, 404)
        res = self.api(ProductMovementsView, "GET", path, self.marketer, pk=self.product.id)
        self.assertEqual(res.status_code, 404)

    def test_movement_log(self):
        create_pickup(Actor(self.marketer), self.product.id)
        res = self.api(ProductMovementsView, "GET", "/", self.master, pk=self.product.id)
        self.assertEqual([m["kind"] for m in res.data["results"]], ["RESERVE", "RECEIPT"])
        self.assertEqual(res.data["results"][1]["balance_after"], 2)
