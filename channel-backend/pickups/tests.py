"""
Pickup creation and the lifecycle state table.
"""
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone

from common.exceptions import (
    AccountLocked,
    ActiveStockExists,
    AllowanceExceeded,
    AuthorizationDenied,
    IllegalTransition,
    InsufficientStock,
    LocationMismatch,
    NotFound,
    NotOwner,
    StateConflict,
)
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from inventory.models import InventoryUnit
from notifications.models import Notification
from pickups import state_machine
from pickups.models import Pickup, PickupStatus
from pickups.services import confirm_return, create_pickup, request_return
from pickups.state_machine import Event


class CreatePickupTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)

    def test_pickup_reserves_one_unit(self):
        """Marketer with no active stock picks up one of five units"""
        pickup = create_pickup(Actor(self.marketer), self.product.id)

        self.assertEqual(pickup.status, PickupStatus.PENDING)
        self.assertEqual(pickup.quantity, 1)
        self.assertEqual(pickup.reserved_count, 1)
        self.assertEqual(pickup.deadline - pickup.pickup_date, timezone.timedelta(hours=48))
        self.assertEqual(InventoryUnit.objects.filter(product=self.product, status="reserved").count(), 1)
        self.assertEqual(InventoryUnit.objects.filter(product=self.product, status="available").count(), 4)
        self.assertEqual(InventoryUnit.objects.get(status="reserved").pickup_id, pickup.id)

    def test_admin_chain_is_notified_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            create_pickup(Actor(self.marketer), self.product.id)

        recipients = set(Notification.objects.filter(event_type="pickup_created").values_list("recipient_id", flat=True))
        self.assertEqual(recipients, {self.marketer.id, self.admin.id, self.super_admin.id})

    def test_locked_account_rejected(self):
        self.marketer.is_locked = True
        self.marketer.save()
        with self.assertRaises(AccountLocked):
            create_pickup(Actor(self.marketer), self.product.id)

    def test_active_stock_messages_depend_on_sub_state(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        messages = {}
        for status in (PickupStatus.PENDING, PickupStatus.PENDING_ORDER, PickupStatus.RETURN_PENDING, PickupStatus.TRANSFER_PENDING):
            Pickup.objects.filter(pk=pickup.pk).update(status=status)
            with self.assertRaises(ActiveStockExists) as ctx:
                create_pickup(Actor(self.marketer), self.product.id)
            self.assertEqual(ctx.exception.details["active_status"], status)
            messages[status] = ctx.exception.message

        self.assertEqual(len(set(messages.values())), 4)
        self.assertIn("awaiting confirmation", messages[PickupStatus.RETURN_PENDING])

    def test_allowance_exceeded(self):
        with self.assertRaises(AllowanceExceeded) as ctx:
            create_pickup(Actor(self.marketer), self.product.id, quantity=2)
        self.assertEqual(ctx.exception.details["allowance"], 1)

    def test_dealer_in_other_location_rejected(self):
        far_dealer = self.make_user("DL009", "Dealer", location="Abuja")
        far_product = self.make_product(far_dealer, units=2)
        with self.assertRaises(LocationMismatch):
            create_pickup(Actor(self.marketer), far_product.id)

    def test_unknown_or_inactive_product(self):
        with self.assertRaises(NotFound):
            create_pickup(Actor(self.marketer), 999999)
        self.product.is_active = False
        self.product.save()
        with self.assertRaises(NotFound):
            create_pickup(Actor(self.marketer), self.product.id)

    def test_out_of_stock(self):
        empty = self.make_product(self.dealer, units=0)
        with self.assertRaises(InsufficientStock):
            create_pickup(Actor(self.marketer), empty.id)
        self.assertFalse(Pickup.objects.filter(marketer=self.marketer).exists())

    def test_master_admin_cannot_pick_up(self):
        with self.assertRaises(AuthorizationDenied):
            create_pickup(Actor(self.master), self.product.id)

    def test_database_refuses_second_active_pickup(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Pickup.objects.create(
                    marketer=self.marketer,
                    product=self.product,
                    deadline=pickup.deadline,
                    status=PickupStatus.RETURN_PENDING,
                )
        self.assertEqual(Pickup.objects.active().filter(marketer=self.marketer).count(), 1)

    def test_new_pickup_allowed_after_terminal_state(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        request_return(Actor(self.marketer), pickup.id)
        confirm_return(Actor(self.master), pickup.id)

        second = create_pickup(Actor(self.marketer), self.product.id)
        self.assertEqual(second.status, PickupStatus.PENDING)


class ReturnTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)
        self.pickup = create_pickup(Actor(self.marketer), self.product.id)

    def test_request_and_confirm_return(self):
        with self.captureOnCommitCallbacks(execute=True):
            request_return(Actor(self.marketer), self.pickup.id)
        self.pickup.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.RETURN_PENDING)
        self.assertIsNotNone(self.pickup.return_requested_at)
        self.assertTrue(Notification.objects.filter(recipient=self.master, event_type="return_requested").exists())

        with self.captureOnCommitCallbacks(execute=True):
            confirm_return(Actor(self.master), self.pickup.id)
        self.pickup.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(self.pickup.status, PickupStatus.RETURNED)
        self.assertEqual(self.product.restocked_units, 1)
        self.assertEqual(InventoryUnit.objects.filter(status="available").count(), 5)
        self.assertFalse(InventoryUnit.objects.filter(pickup=self.pickup).exists())
        self.assertTrue(Notification.objects.filter(recipient=self.marketer, event_type="return_confirmed").exists())

    def test_only_owner_requests_return(self):
        with self.assertRaises(NotOwner):
            request_return(Actor(self.marketer_b), self.pickup.id)

    def test_confirm_requires_pending_return(self):
        with self.assertRaises(IllegalTransition):
            confirm_return(Actor(self.master), self.pickup.id)

    def test_marketer_cannot_confirm_return(self):
        request_return(Actor(self.marketer), self.pickup.id)
        with self.assertRaises(AuthorizationDenied):
            confirm_return(Actor(self.marketer), self.pickup.id)

    def test_double_confirm_return_fails(self):
        request_return(Actor(self.marketer), self.pickup.id)
        confirm_return(Actor(self.master), self.pickup.id)
        with self.assertRaises(StateConflict):
            confirm_return(Actor(self.master), self.pickup.id)
        self.product.refresh_from_db()
        self.assertEqual(self.product.restocked_units, 1)


class StateMachineTests(ChannelFixturesMixin, TestCase):
    def test_table_rejects_unlisted_pairs(self):
        S = PickupStatus
        self.assertEqual(state_machine.next_status(S.PENDING, Event.PLACE_ORDER), S.PENDING_ORDER)
        self.assertEqual(state_machine.next_status(S.TRANSFER_PENDING, Event.REJECT_TRANSFER), S.PENDING)
        for terminal in (S.SOLD, S.RETURNED, S.TRANSFER_APPROVED, S.TRANSFER_REJECTED, S.EXPIRED):
            for event in (Event.PLACE_ORDER, Event.REQUEST_TRANSFER, Event.CONFIRM_ORDER, Event.EXPIRE):
                with self.assertRaises(IllegalTransition):
                    state_machine.next_status(terminal, event)

    def test_expire_sources(self):
        self.assertEqual(
            set(state_machine.sources_for(Event.EXPIRE)),
            {PickupStatus.PENDING, PickupStatus.PENDING_ORDER},
        )

    def test_apply_refuses_stale_status(self):
        self.build_network(units=1)
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        Pickup.objects.filter(pk=pickup.pk).update(status=PickupStatus.SOLD)

        with self.assertRaises(StateConflict):
            state_machine.apply(pickup, Event.REQUEST_RETURN)
        pickup.refresh_from_db()
        self.assertEqual(pickup.status, PickupStatus.SOLD)

    def test_status_label(self):
        self.build_network(units=1)
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        self.assertEqual(pickup.status_label(), "Pending")
        self.expire_deadline(pickup)
        self.assertEqual(pickup.status_label(), "Expired")
        Pickup.objects.filter(pk=pickup.pk).update(status=PickupStatus.RETURN_PENDING)
        pickup.refresh_from_db()
        self.assertEqual(pickup.status_label(), "Pending Return")
