import threading
import unittest
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from common.exceptions import NoActivePickup, NotPending
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from inventory.models import InventoryUnit
from notifications.models import Notification
from orders.models import Order, OrderStatus
from orders.services import confirm_order, place_order
from pickups.expiry import sweep_expired
from pickups.models import Pickup, PickupStatus
from pickups.services import confirm_return, create_pickup
from pickups.tasks import expire_overdue_pickups


CUSTOMER = {"name": "Ada Obi", "phone": "08030000000"}


class SweepTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)

    def test_overdue_pickup_becomes_pending_return(self):
        self.expire_deadline(self.pickup)

        with self.assertRaises(NoActivePickup):
            place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)

        with self.captureOnCommitCallbacks(execute=True):
            result = sweep_expired()

        self.assertEqual(result.expired, [self.pickup.id])
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.RETURN_PENDING)
        self.assertIsNotNone(self.pickup.expired_at)
        self.assertEqual(self.pickup.return_requested_at, self.pickup.expired_at)
        # units stay with the pickup until the return is confirmed
        self.assertEqual(InventoryUnit.objects.filter(pickup=self.pickup, status="reserved").count(), 1)

        recipients = set(
            Notification.objects.filter(event_type="pickup_expired").values_list("recipient_id", flat=True)
        )
        self.assertEqual(recipients, {self.marketer.id, self.admin.id, self.super_admin.id, self.master.id})

        confirm_return(Actor(self.master), self.pickup.id)
        self.assertEqual(InventoryUnit.objects.filter(status="available").count(), 5)

    def test_deadline_instant_counts_as_overdue(self):
        result = sweep_expired(now=self.pickup.deadline)
        self.assertEqual(result.expired, [self.pickup.id])

    def test_pickup_before_deadline_untouched(self):
        result = sweep_expired()
        self.assertEqual(result.expired, [])
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.PENDING)

    def test_second_sweep_is_a_no_op(self):
        self.expire_deadline(self.pickup)
        sweep_expired()
        self.assertEqual(sweep_expired().expired, [])

    def test_sold_pickup_never_expires(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        confirm_order(Actor(self.master), order.id)
        self.expire_deadline(self.pickup)

        self.assertEqual(sweep_expired().expired, [])
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.SOLD)

    def test_pending_order_is_cancelled_on_expiry(self):
        order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        self.expire_deadline(self.pickup)

        with self.captureOnCommitCallbacks(execute=True):
            result = sweep_expired()

        self.assertEqual(result.expired, [self.pickup.id])
        self.assertEqual(result.cancelled_orders, [order.id])
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.CANCELLED)
        self.assertIsNotNone(order.cancelled_at)
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.RETURN_PENDING)
        unit = InventoryUnit.objects.get(pickup=self.pickup)
        self.assertEqual(unit.status, InventoryUnit.Status.RESERVED)
        self.assertIsNone(unit.order_id)
        self.assertIn(
            "cancelled",
            Notification.objects.filter(event_type="pickup_expired").first().message,
        )

    def test_small_batches_cover_everything(self):
        other = create_pickup(Actor(self.marketer_b), self.product.id)
        third = create_pickup(Actor(self.admin), self.product.id)
        for p in (self.pickup, other, third):
            self.expire_deadline(p)

        result = sweep_expired(batch_size=2)
        self.assertEqual(sorted(result.expired), sorted([self.pickup.id, other.id, third.id]))
        self.assertEqual(result.batches, 2)

    def test_notification_failure_does_not_stop_sweep(self):
        other = create_pickup(Actor(self.marketer_b), self.product.id)
        self.expire_deadline(self.pickup)
        self.expire_deadline(other)

        with mock.patch("pickups.events.pickup_expired", side_effect=[RuntimeError("smtp down"), None]):
            result = sweep_expired()

        self.assertEqual(result.notification_failures, 1)
        self.assertEqual(len(result.expired), 2)
        self.assertEqual(
            Pickup.objects.filter(pk__in=[self.pickup.id, other.id], status=PickupStatus.RETURN_PENDING).count(),
            2,
        )


class ExpireCommandTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=2)
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)
        self.expire_deadline(self.pickup)

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command("expire_pickups", "--dry-run", stdout=out)
        self.assertIn("1 pickup(s) would expire", out.getvalue())
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.PENDING)

    def test_sweep(self):
        out = StringIO()
        call_command("expire_pickups", "--batch-size", "10", stdout=out)
        self.assertIn("Expired 1 pickup(s)", out.getvalue())
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.RETURN_PENDING)

    def test_celery_task(self):
        expired = expire_overdue_pickups.apply().get()
        self.assertEqual(expired, [self.pickup.id])
        self.assertFalse(Order.objects.exists())


@unittest.skipUnless(
    connection.features.has_select_for_update_skip_locked,
    "needs SELECT ... FOR UPDATE SKIP LOCKED",
)
class ConfirmDuringSweepTests(ChannelFixturesMixin, TransactionTestCase):
    """A confirmation racing the sweeper over one overdue order settles one way."""

    def setUp(self):
        self.build_network(units=3)
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)
        self.order = place_order(Actor(self.marketer), self.pickup.id, 1, "150000", CUSTOMER)
        self.expire_deadline(self.pickup)

    def test_confirm_and_sweep_do_not_deadlock(self):
        outcome, errors = {}, []
        barrier = threading.Barrier(2)

        def confirm():
            try:
                barrier.wait()
                outcome["confirmed"] = confirm_order(Actor(self.master), self.order.id)
            except NotPending:
                outcome["confirmed"] = None
            except Exception as exc:
                errors.append(exc)
            finally:
                connection.close()

        def sweep():
            try:
                barrier.wait()
                outcome["swept"] = sweep_expired()
            except Exception as exc:
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=confirm), threading.Thread(target=sweep)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.pickup.refresh_from_db()
        self.order.refresh_from_db()
        if outcome["confirmed"] is not None:
            self.assertEqual(self.pickup.status, PickupStatus.SOLD)
            self.assertEqual(self.order.status, OrderStatus.RELEASED_CONFIRMED)
            self.assertEqual(InventoryUnit.objects.get(order=self.order).status, InventoryUnit.Status.SOLD)
        else:
            self.assertEqual(self.pickup.status, PickupStatus.RETURN_PENDING)
            self.assertEqual(self.order.status, OrderStatus.CANCELLED)
            self.assertEqual(outcome["swept"].cancelled_orders, [self.order.id])
            self.assertEqual(InventoryUnit.objects.filter(pickup=self.pickup, status="reserved").count(), 1)
