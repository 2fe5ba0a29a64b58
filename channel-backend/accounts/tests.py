from django.test import TestCase
from rest_framework.test import force_authenticate

from accounts.api import AccountLockView, MeView
from accounts.services import lock_account, unlock_account
from common.exceptions import AccountLocked, AuthorizationDenied, NotFound, ValidationFailed
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from notifications.models import Notification
from pickups.services import create_pickup


class AccountLockTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=3)

    def test_locked_marketer_cannot_pick_up(self):
        with self.captureOnCommitCallbacks(execute=True):
            user = lock_account(Actor(self.master), self.marketer.id, reason="Unreturned stock")

        self.assertTrue(user.is_locked)
        self.assertIsNotNone(user.locked_at)
        self.assertEqual(user.lock_reason, "Unreturned stock")
        recipients = set(Notification.objects.filter(event_type="account_locked").values_list("recipient_id", flat=True))
        self.assertEqual(recipients, {self.marketer.id, self.admin.id, self.super_admin.id, self.master.id})

        with self.assertRaises(AccountLocked):
            create_pickup(Actor(user), self.product.id)

        with self.captureOnCommitCallbacks(execute=True):
            user = unlock_account(Actor(self.master), self.marketer.id)
        self.assertFalse(user.is_locked)
        self.assertEqual(user.lock_reason, "")
        self.assertTrue(Notification.objects.filter(recipient=self.marketer, event_type="account_unlocked").exists())

        pickup = create_pickup(Actor(user), self.product.id)
        self.assertEqual(pickup.marketer_id, self.marketer.id)

    def test_relocking_keeps_first_timestamp(self):
        first = lock_account(Actor(self.master), self.marketer.id)
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            second = lock_account(Actor(self.master), self.marketer.id, reason="Second warning")
        self.assertEqual(second.locked_at, first.locked_at)
        self.assertEqual(second.lock_reason, "Second warning")
        self.assertEqual(callbacks, [])

    def test_unlocking_an_open_account_is_a_no_op(self):
        user = unlock_account(Actor(self.master), self.marketer.id)
        self.assertFalse(user.is_locked)
        self.assertFalse(Notification.objects.exists())

    def test_rules(self):
        with self.assertRaises(AuthorizationDenied):
            lock_account(Actor(self.admin), self.marketer.id)
        with self.assertRaises(ValidationFailed):
            lock_account(Actor(self.master), self.master.id)
        with self.assertRaises(NotFound):
            lock_account(Actor(self.master), 999999)


class AccountApiTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=0)

    def test_me(self):
        res = self.api(MeView, "GET", "/api/v1/accounts/me", self.marketer)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["unique_id"], "MK001")
        self.assertEqual(res.data["admin_id"], self.admin.id)

    def test_lock_and_unlock(self):
        request = self.factory.post("/", {"reason": "Audit"}, format="json")
        force_authenticate(request, user=self.master.user)
        res = AccountLockView.as_view(lock=True)(request, pk=self.marketer_b.id)
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["is_locked"])
        self.assertEqual(res.data["lock_reason"], "Audit")

        request = self.factory.post("/", {}, format="json")
        force_authenticate(request, user=self.master.user)
        res = AccountLockView.as_view(lock=False)(request, pk=self.marketer_b.id)
        self.assertFalse(res.data["is_locked"])

    def test_marketer_cannot_lock(self):
        res = self.api(AccountLockView, "POST", "/", self.marketer, {}, pk=self.marketer_b.id)
        self.assertEqual(res.status_code, 403)
