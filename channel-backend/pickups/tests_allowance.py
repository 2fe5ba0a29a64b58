from datetime import timedelta

from django.test import TestCase, override_settings
from django.conf import settings
from django.utils import timezone

from common.exceptions import (
    AllowanceExceeded,
    AuthorizationDenied,
    CooldownActive,
    RequestAlreadyExists,
    StateConflict,
    ValidationFailed,
)
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from notifications.models import Notification
from pickups.allowance import (
    check_eligibility,
    get_allowance,
    pending_additional_requests,
    request_additional_pickup,
    review_additional_request,
)
from pickups.models import AdditionalPickupRequest, AdditionalRequestStatus
from pickups.services import create_bulk_pickup


class AdditionalPickupTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=5)

    def test_approval_extends_next_pickup_only(self):
        self.assertEqual(get_allowance(self.marketer), 1)
        with self.assertRaises(AllowanceExceeded):
            create_bulk_pickup(Actor(self.marketer), self.product.id, 3)

        with self.captureOnCommitCallbacks(execute=True):
            req = request_additional_pickup(Actor(self.marketer), note="Market day")
        self.assertEqual(req.status, AdditionalRequestStatus.PENDING)
        self.assertTrue(
            Notification.objects.filter(recipient=self.master, event_type="additional_pickup_requested").exists()
        )

        with self.captureOnCommitCallbacks(execute=True):
            review_additional_request(Actor(self.master), req.id, "approve")
        self.assertEqual(get_allowance(self.marketer), 3)
        self.assertTrue(
            Notification.objects.filter(recipient=self.marketer, event_type="additional_pickup_approved").exists()
        )

        pickup = create_bulk_pickup(Actor(self.marketer), self.product.id, 3)
        self.assertEqual(pickup.quantity, 3)
        self.assertEqual(pickup.units.count(), 3)
        self.assertEqual(get_allowance(self.marketer), 1)
        self.assertFalse(AdditionalPickupRequest.objects.filter(marketer=self.marketer).exists())

    def test_one_open_request_at_a_time(self):
        request_additional_pickup(Actor(self.marketer))
        with self.assertRaises(RequestAlreadyExists):
            request_additional_pickup(Actor(self.marketer))

        eligibility = check_eligibility(self.marketer)
        self.assertFalse(eligibility["eligible"])
        self.assertEqual(eligibility["reason"], "You already have a pending request")

    def test_approved_request_blocks_new_request(self):
        req = request_additional_pickup(Actor(self.marketer))
        review_additional_request(Actor(self.master), req.id, "approve")
        with self.assertRaises(RequestAlreadyExists):
            request_additional_pickup(Actor(self.marketer))

    def test_rejection_starts_cooldown(self):
        req = request_additional_pickup(Actor(self.marketer))
        req = review_additional_request(Actor(self.master), req.id, "reject")

        hours = settings.PICKUP_RULES["ADDITIONAL_REQUEST_COOLDOWN_HOURS"]
        self.assertEqual(req.status, AdditionalRequestStatus.REJECTED)
        self.assertEqual(req.next_request_allowed_at, req.reviewed_at + timedelta(hours=hours))
        self.assertEqual(get_allowance(self.marketer), 1)

        with self.assertRaises(CooldownActive):
            request_additional_pickup(Actor(self.marketer))
        eligibility = check_eligibility(self.marketer)
        self.assertFalse(eligibility["eligible"])
        self.assertEqual(eligibility["next_request_allowed_at"], req.next_request_allowed_at)

        AdditionalPickupRequest.objects.filter(pk=req.pk).update(
            next_request_allowed_at=timezone.now() - timedelta(minutes=1)
        )
        self.assertTrue(check_eligibility(self.marketer)["eligible"])
        again = request_additional_pickup(Actor(self.marketer))
        self.assertEqual(again.status, AdditionalRequestStatus.PENDING)
        # rejected requests stay as history
        self.assertEqual(AdditionalPickupRequest.objects.filter(marketer=self.marketer).count(), 2)

    @override_settings(PICKUP_RULES={**settings.PICKUP_RULES, "ADDITIONAL_REQUEST_COOLDOWN_HOURS": 0})
    def test_no_cooldown_when_disabled(self):
        req = request_additional_pickup(Actor(self.marketer))
        review_additional_request(Actor(self.master), req.id, "reject")
        request_additional_pickup(Actor(self.marketer))

    def test_review_is_master_admin_only_and_once(self):
        req = request_additional_pickup(Actor(self.marketer))
        with self.assertRaises(AuthorizationDenied):
            review_additional_request(Actor(self.super_admin), req.id, "approve")

        review_additional_request(Actor(self.master), req.id, "approve")
        with self.assertRaises(StateConflict):
            review_additional_request(Actor(self.master), req.id, "reject")

    def test_dealer_cannot_request(self):
        with self.assertRaises(AuthorizationDenied):
            request_additional_pickup(Actor(self.dealer))

    def test_unknown_review_action(self):
        req = request_additional_pickup(Actor(self.marketer))
        for action in ("deny", "", None):
            with self.assertRaises(ValidationFailed):
                review_additional_request(Actor(self.master), req.id, action)
        req.refresh_from_db()
        self.assertEqual(req.status, AdditionalRequestStatus.PENDING)
        self.assertIsNone(req.next_request_allowed_at)

    def test_pending_queue(self):
        first = request_additional_pickup(Actor(self.marketer))
        second = request_additional_pickup(Actor(self.marketer_b))
        self.assertEqual([r.id for r in pending_additional_requests()], [first.id, second.id])

        review_additional_request(Actor(self.master), first.id, "approve")
        self.assertEqual([r.id for r in pending_additional_requests()], [second.id])
