# channel-backend/commissions/ledger.py
"""
Commission ledger boundary.

Order confirmation calls ``get_ledger().credit_commission(...)``. The backend
is chosen by ``settings.COMMISSION_LEDGER_BACKEND`` and must be idempotent per
order: confirmation may retry after an ambiguous failure.
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils.module_loading import import_string

from .models import CommissionCredit, CommissionRate, Wallet

logger = logging.getLogger(__name__)


class CommissionLedger:
    def credit_commission(self, marketer_id, order_id, device_type, quantity):
        raise NotImplementedError


class DatabaseCommissionLedger(CommissionLedger):
    """Credits wallets stored in this database, one ``CommissionCredit`` per tier."""

    def credit_commission(self, marketer_id, order_id, device_type, quantity):
        from accounts.models import ChannelUser

        marketer = ChannelUser.objects.select_related("admin", "super_admin", "admin__super_admin").get(pk=marketer_id)
        rate = CommissionRate.objects.filter(device_type__iexact=device_type).first()
        if rate is None:
            logger.warning("No commission rate for device type %r (order %s)", device_type, order_id)
            return []

        super_admin = marketer.super_admin or (marketer.admin.super_admin if marketer.admin_id else None)
        tiers = [
            ("marketer", marketer, rate.marketer_amount),
            ("admin", marketer.admin, rate.admin_amount),
            ("super_admin", super_admin, rate.super_admin_amount),
        ]

        credits = []
        with transaction.atomic():
            for role, beneficiary, unit_amount in tiers:
                if beneficiary is None or not unit_amount:
                    continue
                amount = Decimal(unit_amount) * quantity
                try:
                    with transaction.atomic():
                        credit = CommissionCredit.objects.create(
                            order_id=order_id,
                            beneficiary=beneficiary,
                            beneficiary_role=role,
                            device_type=device_type,
                            quantity=quantity,
                            unit_amount=unit_amount,
                            amount=amount,
                        )
                except IntegrityError:
                    logger.info("Commission for order %s (%s) already credited", order_id, role)
                    continue
                Wallet.objects.get_or_create(owner=beneficiary)
                Wallet.objects.filter(owner=beneficiary).update(balance=F("balance") + amount)
                credits.append(credit)

        logger.info("Credited %d commission(s) for order %s", len(credits), order_id)
        return credits


def get_ledger():
    return import_string(settings.COMMISSION_LEDGER_BACKEND)()
