"""Tests for the payout & earnings ledger."""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.payouts.models import PayoutRequest, VendorEarning, VendorWallet
from apps.payouts.services import split_earning
from core.exceptions import (
    InsufficientBalance, InvalidAmount, InvalidPayoutMethod, InvalidTransition, NotProcessable,
    PayoutRequestNotFound, PendingRequestExists, UserNotFound, WalletNotFound,
)

pytestmark = pytest.mark.django_db

BANK_DETAILS = {
    'bank_account_holder_name': 'Pearl Crafts W.L.L.',
    'bank_account_number': '0012345678',
    'bank_name': 'National Bank of Bahrain',
    'bank_iban': 'BH67BMAG00001299123456',
}


@pytest.fixture
def orders(place_order):
    """Three delivered-order stand-ins to hang earnings off."""
    return [place_order() for _ in range(3)]


@pytest.fixture
def funded_vendor(payout_svc, vendor, orders):
    """Vendor with 90.000 available from one 100.000 order."""
    payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '100.000')
    return vendor


def wallet_of(vendor):
    return VendorWallet.objects.get(vendor=vendor)


class TestSplitEarning:
    """90/10 split with 3dp rounding."""

    @pytest.mark.parametrize('amount,share,commission', [
        ('100', '90.000', '10.000'),
        ('17', '15.300', '1.700'),
        ('0.005', '0.005', '0.000'),
        ('33.335', '30.002', '3.333'),
        ('0', '0.000', '0.000'),
    ])
    def test_split(self, amount, share, commission):
        vendor_share, platform_commission = split_earning(amount)

        assert vendor_share == Decimal(share)
        assert platform_commission == Decimal(commission)
        assert vendor_share + platform_commission == Decimal(amount).quantize(Decimal('0.001'))

    def test_commission_is_remainder_not_rounded_tenth(self):
        # 0.005 x 0.9 rounds up to 0.005; a separately rounded 10% would be 0.001
        vendor_share, platform_commission = split_earning('0.005')

        assert vendor_share == Decimal('0.005')
        assert platform_commission == Decimal('0.000')
        assert (Decimal('0.005') * Decimal('0.1')).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP) == Decimal('0.001')


class TestCreateVendorEarning:
    """Earning creation and the vendor wallet credit."""

    def test_earning_credits_available_and_total(self, payout_svc, vendor, orders):
        earning = payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '100')

        assert earning.vendor_share == Decimal('90.000')
        assert earning.platform_commission == Decimal('10.000')
        assert earning.payout_status == VendorEarning.PENDING
        assert earning.currency == 'BHD'

        wallet = wallet_of(vendor)
        assert wallet.available_balance == Decimal('90.000')
        assert wallet.total_earned == Decimal('90.000')
        assert wallet.pending_balance == Decimal('0.000')

    def test_duplicate_call_is_idempotent(self, payout_svc, vendor, orders):
        first = payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '100')
        second = payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '100')

        assert first.pk == second.pk
        assert VendorEarning.objects.count() == 1
        assert wallet_of(vendor).available_balance == Decimal('90.000')
        assert wallet_of(vendor).total_earned == Decimal('90.000')

    def test_unique_constraint_backs_idempotency(self, payout_svc, vendor, orders):
        payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '10')

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                VendorEarning.objects.create(
                    vendor=vendor, order=orders[0], order_number=orders[0].order_number,
                    order_amount=Decimal('10'), vendor_share=Decimal('9'), platform_commission=Decimal('1'),
                )

    def test_negative_amount_rejected(self, payout_svc, vendor, orders):
        with pytest.raises(InvalidAmount):
            payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '-1')

        assert not VendorWallet.objects.exists()

    def test_unknown_vendor(self, payout_svc, orders):
        with pytest.raises(UserNotFound):
            payout_svc.create_vendor_earning(424242, orders[0].pk, orders[0].order_number, '10')


class TestAdminCommission:
    """Best-effort platform commission credit."""

    def test_commission_credited_to_admin_wallet(self, payout_svc, admin_user, orders):
        commission = payout_svc.create_admin_commission(orders[0].pk, orders[0].order_number, '38.500')

        assert commission == Decimal('3.850')
        assert admin_user.wallet.balance == Decimal('3.850')

    def test_missing_admin_is_swallowed(self, payout_svc, orders):
        payout_svc.admin_user_id = 777777

        assert payout_svc.create_admin_commission(orders[0].pk, orders[0].order_number, '10') is None

    def test_wallet_failure_is_swallowed(self, payout_svc, orders, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError('db down')

        monkeypatch.setattr(payout_svc.wallet, 'credit_wallet', explode)

        assert payout_svc.create_admin_commission(orders[0].pk, orders[0].order_number, '10') is None


class TestCreatePayoutRequest:
    """Vendor withdrawal requests."""

    def test_request_moves_available_to_pending(self, payout_svc, funded_vendor):
        payout = payout_svc.create_payout_request(
            funded_vendor.pk, '40', PayoutRequest.BANK_TRANSFER, BANK_DETAILS, notes='Monthly'
        )

        assert payout.status == PayoutRequest.PENDING
        assert payout.requested_amount == Decimal('40.000')
        assert payout.bank_name == 'National Bank of Bahrain'
        assert payout.notes == 'Monthly'

        wallet = wallet_of(funded_vendor)
        assert wallet.available_balance == Decimal('50.000')
        assert wallet.pending_balance == Decimal('40.000')

    def test_no_wallet(self, payout_svc, vendor):
        with pytest.raises(WalletNotFound):
            payout_svc.create_payout_request(vendor.pk, '1', PayoutRequest.PAYPAL, {'paypal_email': 'a@b.test'})

    def test_amount_above_available(self, payout_svc, funded_vendor):
        with pytest.raises(InsufficientBalance):
            payout_svc.create_payout_request(funded_vendor.pk, '90.001', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        assert wallet_of(funded_vendor).available_balance == Decimal('90.000')
        assert not PayoutRequest.objects.exists()

    def test_only_one_outstanding_request(self, payout_svc, funded_vendor, admin_user):
        first = payout_svc.create_payout_request(funded_vendor.pk, '10', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        with pytest.raises(PendingRequestExists):
            payout_svc.create_payout_request(funded_vendor.pk, '10', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        payout_svc.process_payout_request(first.pk, admin_user.pk, PayoutRequest.APPROVED)
        with pytest.raises(PendingRequestExists):
            payout_svc.create_payout_request(funded_vendor.pk, '10', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        payout_svc.process_payout_request(first.pk, admin_user.pk, PayoutRequest.COMPLETED)
        second = payout_svc.create_payout_request(funded_vendor.pk, '10', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)
        assert second.status == PayoutRequest.PENDING

    @pytest.mark.parametrize('method,details', [
        (PayoutRequest.BANK_TRANSFER, {'bank_name': 'NBB'}),
        (PayoutRequest.PAYPAL, {}),
        (PayoutRequest.STRIPE, {'paypal_email': 'x@y.test'}),
        ('CRYPTO', {}),
    ])
    def test_method_details_validated(self, payout_svc, funded_vendor, method, details):
        with pytest.raises(InvalidPayoutMethod):
            payout_svc.create_payout_request(funded_vendor.pk, '10', method, details)

    @pytest.mark.parametrize('amount', ['0', '-5'])
    def test_non_positive_amount(self, payout_svc, funded_vendor, amount):
        with pytest.raises(InvalidAmount):
            payout_svc.create_payout_request(funded_vendor.pk, amount, PayoutRequest.BANK_TRANSFER, BANK_DETAILS)


class TestProcessPayoutRequest:
    """Admin decisions and the bucket round-trip."""

    def test_rejection_restores_balances(self, payout_svc, funded_vendor, admin_user):
        before = wallet_of(funded_vendor)
        payout = payout_svc.create_payout_request(funded_vendor.pk, '35.5', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        payout = payout_svc.process_payout_request(
            payout.pk, admin_user.pk, PayoutRequest.REJECTED, rejection_reason='IBAN mismatch'
        )

        after = wallet_of(funded_vendor)
        assert payout.status == PayoutRequest.REJECTED
        assert payout.rejection_reason == 'IBAN mismatch'
        assert payout.processed_by_id == admin_user.pk
        assert payout.processed_date is not None
        assert after.available_balance == before.available_balance
        assert after.pending_balance == before.pending_balance
        assert after.total_withdrawn == Decimal('0.000')

    def test_failure_restores_balances(self, payout_svc, funded_vendor, admin_user):
        payout = payout_svc.create_payout_request(funded_vendor.pk, '20', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        payout_svc.process_payout_request(payout.pk, admin_user.pk, PayoutRequest.FAILED)

        assert wallet_of(funded_vendor).available_balance == Decimal('90.000')
        assert wallet_of(funded_vendor).pending_balance == Decimal('0.000')

    def test_completion_moves_pending_to_withdrawn(self, payout_svc, funded_vendor, admin_user):
        payout = payout_svc.create_payout_request(funded_vendor.pk, '90', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        payout = payout_svc.process_payout_request(
            payout.pk, admin_user.pk, PayoutRequest.COMPLETED, transaction_reference='NBB-TRF-001'
        )

        wallet = wallet_of(funded_vendor)
        assert payout.completed_date is not None
        assert payout.transaction_reference == 'NBB-TRF-001'
        assert wallet.available_balance == Decimal('0.000')
        assert wallet.pending_balance == Decimal('0.000')
        assert wallet.total_withdrawn == Decimal('90.000')
        assert wallet.last_payout_date is not None
        assert VendorEarning.objects.get().payout_status == VendorEarning.PAID
        assert payout_svc.audit_vendor_wallet(wallet) == []

    def test_approval_keeps_funds_pending(self, payout_svc, funded_vendor, admin_user):
        payout = payout_svc.create_payout_request(funded_vendor.pk, '30', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        payout = payout_svc.process_payout_request(payout.pk, admin_user.pk, PayoutRequest.APPROVED)

        assert payout.status == PayoutRequest.APPROVED
        assert wallet_of(funded_vendor).pending_balance == Decimal('30.000')

    def test_fifo_marks_whole_earnings_only(self, payout_svc, vendor, orders, admin_user):
        now = timezone.now()
        for order, amount, days_ago in zip(orders, ('50', '30', '10'), (3, 2, 1)):
            earning = payout_svc.create_vendor_earning(vendor.pk, order.pk, order.order_number, amount)
            VendorEarning.objects.filter(pk=earning.pk).update(earned_date=now - timedelta(days=days_ago))
        # shares: 45.000 (oldest), 27.000, 9.000
        payout = payout_svc.create_payout_request(vendor.pk, '55', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        payout_svc.process_payout_request(payout.pk, admin_user.pk, PayoutRequest.COMPLETED)

        statuses = dict(VendorEarning.objects.values_list('vendor_share', 'payout_status'))
        assert statuses == {
            Decimal('45.000'): VendorEarning.PAID,
            Decimal('27.000'): VendorEarning.PENDING,
            Decimal('9.000'): VendorEarning.PAID,
        }
        assert VendorEarning.objects.filter(payout=payout).count() == 2

    @pytest.mark.parametrize('target', [PayoutRequest.PROCESSING, PayoutRequest.PENDING, 'PAID'])
    def test_invalid_target_status(self, payout_svc, funded_vendor, admin_user, target):
        payout = payout_svc.create_payout_request(funded_vendor.pk, '10', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        with pytest.raises(InvalidTransition):
            payout_svc.process_payout_request(payout.pk, admin_user.pk, target)

    def test_terminal_request_not_processable(self, payout_svc, funded_vendor, admin_user):
        payout = payout_svc.create_payout_request(funded_vendor.pk, '10', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)
        payout_svc.process_payout_request(payout.pk, admin_user.pk, PayoutRequest.REJECTED)

        with pytest.raises(NotProcessable):
            payout_svc.process_payout_request(payout.pk, admin_user.pk, PayoutRequest.COMPLETED)

        assert wallet_of(funded_vendor).total_withdrawn == Decimal('0.000')

    def test_unknown_request(self, payout_svc, admin_user):
        with pytest.raises(PayoutRequestNotFound):
            payout_svc.process_payout_request(999, admin_user.pk, PayoutRequest.APPROVED)


class TestPayoutQueries:
    """Listings and reporting folds."""

    def test_payout_request_filters(self, payout_svc, funded_vendor, second_vendor, admin_user):
        payout = payout_svc.create_payout_request(funded_vendor.pk, '25', PayoutRequest.BANK_TRANSFER, BANK_DETAILS)

        assert list(payout_svc.get_vendor_payout_requests(funded_vendor.pk)) == [payout]
        assert not payout_svc.get_vendor_payout_requests(second_vendor.pk).exists()
        assert payout_svc.get_all_payout_requests({'min_amount': 30}).count() == 0
        assert payout_svc.get_all_payout_requests({'status': PayoutRequest.PENDING}).count() == 1
        assert payout_svc.get_payout_request(payout.pk).vendor == funded_vendor

    def test_vendor_sales_stats(self, payout_svc, vendor, orders, admin_user):
        payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '100')
        payout_svc.create_vendor_earning(vendor.pk, orders[1].pk, orders[1].order_number, '33.335')

        stats = payout_svc.get_vendor_sales_stats(vendor.pk)

        assert stats['total_sales'] == Decimal('133.335')
        assert stats['total_orders'] == 2
        assert stats['vendor_earnings'] == Decimal('120.002')
        assert stats['platform_commission'] == Decimal('13.333')
        assert stats['average_order_value'] == Decimal('66.668')
        assert stats['pending_earnings'] == Decimal('120.002')
        assert stats['paid_earnings'] == Decimal('0.000')

    def test_monthly_sales_are_chronological(self, payout_svc, vendor, orders):
        tz = timezone.get_current_timezone()
        dates = [datetime(2025, 3, 10, tzinfo=tz), datetime(2025, 1, 5, tzinfo=tz), datetime(2025, 3, 28, tzinfo=tz)]
        for order, when in zip(orders, dates):
            earning = payout_svc.create_vendor_earning(vendor.pk, order.pk, order.order_number, '10')
            VendorEarning.objects.filter(pk=earning.pk).update(earned_date=when)

        months = payout_svc.get_vendor_monthly_sales(vendor.pk, 2025)

        assert [(m['month'], m['total_orders']) for m in months] == [('January', 1), ('March', 2)]
        assert months[1]['vendor_earnings'] == Decimal('18.000')

    def test_admin_commission_stats(self, payout_svc, vendor, second_vendor, orders):
        payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '100')
        payout_svc.create_vendor_earning(second_vendor.pk, orders[0].pk, orders[0].order_number, '17')

        stats = payout_svc.get_admin_commission_stats()

        assert stats['total_commission'] == Decimal('11.700')
        assert stats['total_vendor_earnings'] == Decimal('105.300')
        assert stats['total_orders'] == 2
        assert stats['average_commission_per_order'] == Decimal('5.850')
        assert len(stats['monthly_breakdown']) == 1

    def test_vendor_wallet_listing(self, payout_svc, vendor, second_vendor, orders):
        payout_svc.create_vendor_earning(vendor.pk, orders[0].pk, orders[0].order_number, '10')
        payout_svc.create_vendor_earning(second_vendor.pk, orders[1].pk, orders[1].order_number, '50')

        wallets = payout_svc.get_all_vendor_wallets()

        assert [w.vendor_id for w in wallets] == [second_vendor.pk, vendor.pk]
        assert payout_svc.get_vendor_wallet(vendor.pk).total_earned == Decimal('9.000')
