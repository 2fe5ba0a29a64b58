from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from common.exceptions import (
    AuthorizationDenied,
    IllegalTransition,
    LocationMismatch,
    NotOwner,
    TargetIneligible,
)
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from inventory.models import InventoryUnit, InventoryMovement
from notifications.models import Notification
from orders.services import place_order
from pickups.models import Pickup, PickupStatus
from pickups.services import create_pickup, request_transfer, review_transfer


CUSTOMER = {"name": "Ada Obi", "phone": "08030000000"}


class TransferTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)
        self.unit_id = InventoryUnit.objects.get(pickup=self.pickup).id

    def test_approved_transfer_hands_units_to_target(self):
        with self.captureOnCommitCallbacks(execute=True):
            request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "Travelling")
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.TRANSFER_PENDING)
        self.assertEqual(self.pickup.transfer_to_id, self.marketer_b.id)
        self.assertTrue(
            Notification.objects.filter(recipient=self.marketer_b, event_type="transfer_requested").exists()
        )

        with self.captureOnCommitCallbacks(execute=True):
            pickup, successor = review_transfer(Actor(self.master), self.pickup.id, "approve")

        pickup.refresh_from_db()
        self.assertEqual(pickup.status, PickupStatus.TRANSFER_APPROVED)
        self.assertEqual(pickup.marketer_id, self.marketer_b.id)
        self.assertEqual(pickup.previous_marketer_id, self.marketer.id)

        self.assertEqual(successor.marketer_id, self.marketer_b.id)
        self.assertEqual(successor.status, PickupStatus.PENDING)
        self.assertEqual(successor.transferred_from_id, pickup.id)
        self.assertEqual(successor.reserved_count, 1)
        self.assertGreater(successor.deadline, pickup.deadline)

        unit = InventoryUnit.objects.get(pk=self.unit_id)
        self.assertEqual(unit.pickup_id, successor.id)
        self.assertEqual(unit.status, InventoryUnit.Status.RESERVED)
        self.assertEqual(
            list(InventoryMovement.objects.filter(kind__in=["TRANSFER_OUT", "TRANSFER_IN"]).values_list("pickup_id", flat=True).order_by("id")),
            [pickup.id, successor.id],
        )
        self.assertTrue(Notification.objects.filter(recipient=self.marketer, event_type="transfer_approved").exists())
        call_command("inventory_check", stdout=StringIO())

    def test_transferred_pickup_cannot_be_transferred_again(self):
        request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "")
        review_transfer(Actor(self.master), self.pickup.id, "approve")

        with self.assertRaises(IllegalTransition):
            request_transfer(Actor(self.marketer_b), self.pickup.id, self.admin.id, "")

    def test_original_owner_is_free_after_approval(self):
        request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "")
        review_transfer(Actor(self.master), self.pickup.id, "approve")

        fresh = create_pickup(Actor(self.marketer), self.product.id)
        self.assertEqual(fresh.status, PickupStatus.PENDING)

    def test_target_can_order_on_successor(self):
        request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "")
        _, successor = review_transfer(Actor(self.master), self.pickup.id, "approve")

        order = place_order(Actor(self.marketer_b), successor.id, 1, "150000", CUSTOMER)
        self.assertEqual(order.pickup_id, successor.id)

    def test_rejected_transfer_reopens_pickup(self):
        request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "Travelling")
        with self.captureOnCommitCallbacks(execute=True):
            pickup, successor = review_transfer(Actor(self.master), self.pickup.id, "reject")

        self.assertIsNone(successor)
        pickup.refresh_from_db()
        self.assertEqual(pickup.status, PickupStatus.PENDING)
        self.assertEqual(pickup.marketer_id, self.marketer.id)
        self.assertIsNone(pickup.transfer_to_id)
        self.assertEqual(pickup.transfer_reason, "")
        self.assertIsNotNone(pickup.transfer_reviewed_at)
        self.assertEqual(InventoryUnit.objects.get(pk=self.unit_id).pickup_id, pickup.id)
        self.assertTrue(Notification.objects.filter(recipient=self.marketer, event_type="transfer_rejected").exists())
        self.assertTrue(Notification.objects.filter(recipient=self.marketer_b, event_type="transfer_rejected").exists())

        order = place_order(Actor(self.marketer), pickup.id, 1, "150000", CUSTOMER)
        self.assertEqual(order.pickup_id, pickup.id)

    def test_only_master_admin_reviews(self):
        request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "")
        with self.assertRaises(AuthorizationDenied):
            review_transfer(Actor(self.admin), self.pickup.id, "approve")

    def test_review_requires_pending_transfer(self):
        with self.assertRaises(IllegalTransition):
            review_transfer(Actor(self.master), self.pickup.id, "approve")
        with self.assertRaises(IllegalTransition):
            review_transfer(Actor(self.master), self.pickup.id, "reject")


class TransferTargetTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)

    def assertRejected(self, exc_class, target_id):
        with self.assertRaises(exc_class):
            request_transfer(Actor(self.marketer), self.pickup.id, target_id, "")
        self.assertEqual(Pickup.objects.get(pk=self.pickup.pk).status, PickupStatus.PENDING)

    def test_only_owner_may_transfer(self):
        with self.assertRaises(NotOwner):
            request_transfer(Actor(self.marketer_b), self.pickup.id, self.admin.id, "")

    def test_self_transfer(self):
        self.assertRejected(TargetIneligible, self.marketer.id)

    def test_non_field_target(self):
        self.assertRejected(TargetIneligible, self.dealer.id)
        self.assertRejected(TargetIneligible, self.master.id)

    def test_locked_target(self):
        self.marketer_b.is_locked = True
        self.marketer_b.save()
        self.assertRejected(TargetIneligible, self.marketer_b.id)

    def test_target_in_other_location(self):
        far = self.make_user("MK050", "Marketer", location="Abuja")
        self.assertRejected(LocationMismatch, far.id)

    def test_target_with_active_stock(self):
        create_pickup(Actor(self.marketer_b), self.product.id)
        self.assertRejected(TargetIneligible, self.marketer_b.id)

    def test_approval_rechecks_target(self):
        request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "")
        create_pickup(Actor(self.marketer_b), self.product.id)

        with self.assertRaises(TargetIneligible):
            review_transfer(Actor(self.master), self.pickup.id, "approve")
        self.assertEqual(Pickup.objects.get(pk=self.pickup.pk).status, PickupStatus.TRANSFER_PENDING)

    def test_approval_refuses_target_locked_since_request(self):
        request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "")
        self.marketer_b.is_locked = True
        self.marketer_b.save()

        with self.assertRaises(TargetIneligible):
            review_transfer(Actor(self.master), self.pickup.id, "approve")
        self.assertEqual(Pickup.objects.get(pk=self.pickup.pk).status, PickupStatus.TRANSFER_PENDING)
        self.assertEqual(Pickup.objects.filter(marketer=self.marketer_b).count(), 0)

    def test_approval_refuses_target_moved_since_request(self):
        request_transfer(Actor(self.marketer), self.pickup.id, self.marketer_b.id, "")
        self.marketer_b.location = "Abuja"
        self.marketer_b.save()

        with self.assertRaises(LocationMismatch):
            review_transfer(Actor(self.master), self.pickup.id, "approve")
        self.assertEqual(Pickup.objects.get(pk=self.pickup.pk).status, PickupStatus.TRANSFER_PENDING)
        self.assertEqual(InventoryUnit.objects.get(pickup=self.pickup).status, InventoryUnit.Status.RESERVED)
