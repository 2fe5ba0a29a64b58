from decimal import Decimal

from django.test import TestCase, override_settings

from commissions.ledger import CommissionLedger, DatabaseCommissionLedger, get_ledger
from commissions.models import CommissionCredit, CommissionRate, Wallet
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from orders.services import confirm_order, place_order
from pickups.services import create_pickup


class RecordingLedger(CommissionLedger):
    calls = []

    def credit_commission(self, marketer_id, order_id, device_type, quantity):
        self.calls.append((marketer_id, order_id, device_type, quantity))
        return []


class DatabaseLedgerTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=2)
        CommissionRate.objects.create(
            device_type="Smartphone",
            marketer_amount=Decimal("1000.00"),
            admin_amount=Decimal("300.00"),
            super_admin_amount=Decimal("0"),
        )
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        self.order = place_order(Actor(self.marketer), pickup.id, 1, "150000", {"name": "Ada", "phone": "0803"})
        self.ledger = DatabaseCommissionLedger()

    def test_credit_is_idempotent_per_order(self):
        first = self.ledger.credit_commission(self.marketer.id, self.order.id, "smartphone", 2)
        self.assertEqual([c.beneficiary_role for c in first], ["marketer", "admin"])
        self.assertEqual(first[0].amount, Decimal("2000.00"))

        again = self.ledger.credit_commission(self.marketer.id, self.order.id, "smartphone", 2)
        self.assertEqual(again, [])
        self.assertEqual(CommissionCredit.objects.filter(order=self.order).count(), 2)
        self.assertEqual(Wallet.objects.get(owner=self.marketer).balance, Decimal("2000.00"))
        self.assertEqual(Wallet.objects.get(owner=self.admin).balance, Decimal("600.00"))
        self.assertFalse(Wallet.objects.filter(owner=self.super_admin).exists())

    def test_unknown_device_type(self):
        with self.assertLogs("commissions.ledger", level="WARNING"):
            credits = self.ledger.credit_commission(self.marketer.id, self.order.id, "tablet", 1)
        self.assertEqual(credits, [])
        self.assertFalse(CommissionCredit.objects.exists())

    def test_super_admin_found_through_admin(self):
        CommissionRate.objects.filter(device_type="Smartphone").update(super_admin_amount=Decimal("100.00"))
        self.marketer.super_admin = None
        self.marketer.save()

        credits = self.ledger.credit_commission(self.marketer.id, self.order.id, "smartphone", 1)
        self.assertEqual(credits[-1].beneficiary_id, self.super_admin.id)


class LedgerBackendTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=1)
        RecordingLedger.calls = []

    def test_default_backend(self):
        self.assertIsInstance(get_ledger(), DatabaseCommissionLedger)

    @override_settings(COMMISSION_LEDGER_BACKEND="commissions.tests.RecordingLedger")
    def test_confirmation_goes_through_configured_backend(self):
        pickup = create_pickup(Actor(self.marketer), self.product.id)
        order = place_order(Actor(self.marketer), pickup.id, 1, "150000", {"name": "Ada", "phone": "0803"})
        confirm_order(Actor(self.master), order.id)

        self.assertEqual(RecordingLedger.calls, [(self.marketer.id, order.id, "smartphone", 1)])
        order.refresh_from_db()
        self.assertTrue(order.commission_paid)
