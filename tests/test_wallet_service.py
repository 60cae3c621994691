"""Tests for the wallet ledger."""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from apps.wallet.models import Wallet, WalletTransaction
from core.exceptions import InsufficientBalance, InvalidAmount, UserNotFound, ValidationFailed, WalletNotFound


pytestmark = pytest.mark.django_db


class TestWalletLookup:
    """get_or_create_wallet and read helpers."""

    def test_wallet_created_lazily_with_zero_balance(self, wallet_svc, customer):
        assert not Wallet.objects.filter(user=customer).exists()

        wallet = wallet_svc.get_or_create_wallet(customer.pk)

        assert wallet.balance == Decimal('0.000')
        assert wallet.currency == 'BHD'
        assert wallet_svc.get_or_create_wallet(customer.pk).pk == wallet.pk

    def test_unknown_user_raises(self, wallet_svc):
        with pytest.raises(UserNotFound):
            wallet_svc.get_or_create_wallet(999999)

    def test_get_wallet_returns_none_before_first_access(self, wallet_svc, customer):
        assert wallet_svc.get_wallet(customer.pk) is None

    def test_get_wallet_balance(self, wallet_svc, customer):
        wallet_svc.credit_wallet(customer.pk, '12.5')

        balance = wallet_svc.get_wallet_balance(customer.pk)

        assert balance == {'balance': Decimal('12.500'), 'currency': 'BHD', 'user_id': customer.pk}

    def test_has_sufficient_balance(self, wallet_svc, customer):
        assert wallet_svc.has_sufficient_balance(customer.pk, 1) is False

        wallet_svc.credit_wallet(customer.pk, '5.000')

        assert wallet_svc.has_sufficient_balance(customer.pk, '5.000') is True
        assert wallet_svc.has_sufficient_balance(customer.pk, '5.001') is False


class TestWalletMutations:
    """credit / debit / refund and the journal they append."""

    def test_credit_appends_journal_line(self, wallet_svc, customer):
        wallet = wallet_svc.credit_wallet(
            customer.pk, '25.1234', payment_method=WalletTransaction.BANK_TRANSFER,
            gateway_transaction_id='GW-1'
        )

        assert wallet.balance == Decimal('25.123')
        txn = wallet.transactions.get()
        assert txn.transaction_type == WalletTransaction.CREDIT
        assert txn.balance_before == Decimal('0.000')
        assert txn.balance_after == Decimal('25.123')
        assert txn.status == WalletTransaction.COMPLETED
        assert txn.payment_method == WalletTransaction.BANK_TRANSFER
        assert txn.gateway_transaction_id == 'GW-1'
        assert txn.transaction_id.startswith('TXN-CREDIT-')

    @pytest.mark.parametrize('amount', [0, '-1', '0.0004', 'NaN', 'Infinity', 'abc'])
    def test_non_positive_amount_rejected(self, wallet_svc, customer, amount):
        with pytest.raises(InvalidAmount):
            wallet_svc.credit_wallet(customer.pk, amount)

        assert not WalletTransaction.objects.exists()

    def test_unknown_payment_method_rejected(self, wallet_svc, customer):
        with pytest.raises(ValidationFailed):
            wallet_svc.credit_wallet(customer.pk, 5, payment_method='Cheque')

    def test_debit_reduces_balance(self, wallet_svc, customer):
        wallet_svc.credit_wallet(customer.pk, '30.000')

        wallet = wallet_svc.debit_wallet(customer.pk, '12.250', description='Payment for order X')

        assert wallet.balance == Decimal('17.750')
        debit = wallet.transactions.filter(transaction_type=WalletTransaction.DEBIT).get()
        assert debit.balance_before == Decimal('30.000')
        assert debit.balance_after == Decimal('17.750')
        assert debit.description == 'Payment for order X'

    def test_debit_more_than_balance_fails_without_side_effects(self, wallet_svc, customer):
        wallet_svc.credit_wallet(customer.pk, '10.000')

        with pytest.raises(InsufficientBalance):
            wallet_svc.debit_wallet(customer.pk, '10.001')

        wallet = Wallet.objects.get(user=customer)
        assert wallet.balance == Decimal('10.000')
        assert wallet.transactions.count() == 1

    def test_debit_without_wallet_raises(self, wallet_svc, customer):
        with pytest.raises(WalletNotFound):
            wallet_svc.debit_wallet(customer.pk, 1)

    def test_debit_rejects_nan(self, wallet_svc, customer):
        wallet_svc.credit_wallet(customer.pk, '10')

        with pytest.raises(InvalidAmount):
            wallet_svc.debit_wallet(customer.pk, 'NaN')

        assert wallet_svc.get_wallet(customer.pk).balance == Decimal('10.000')

    def test_refund_is_linked_to_order(self, wallet_svc, customer, place_order):
        order = place_order()

        wallet = wallet_svc.refund_to_wallet(customer.pk, '21.500', order.pk, 'Refund for order')

        txn = wallet.transactions.get()
        assert txn.transaction_type == WalletTransaction.REFUND
        assert txn.order_id == order.pk
        assert wallet.balance == Decimal('21.500')

    def test_balance_matches_journal_after_mixed_operations(self, wallet_svc, customer, place_order):
        order = place_order()
        wallet_svc.credit_wallet(customer.pk, '100')
        wallet_svc.debit_wallet(customer.pk, '33.333')
        wallet_svc.refund_to_wallet(customer.pk, '3.333', order.pk)
        wallet_svc.debit_wallet(customer.pk, '70.000')

        wallet = Wallet.objects.get(user=customer)
        last = wallet.transactions.order_by('-id').first()
        signed_sum = sum((t.signed_amount for t in wallet.transactions.all()), Decimal('0'))

        assert wallet.balance == Decimal('0.000')
        assert wallet.balance == last.balance_after
        assert wallet.balance == signed_sum
        assert wallet_svc.audit_wallet(wallet) == []

    def test_database_rejects_negative_balance(self, wallet_svc, customer):
        wallet = wallet_svc.get_or_create_wallet(customer.pk)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Wallet.objects.filter(pk=wallet.pk).update(balance=Decimal('-1'))


class TestWalletReads:
    """Transaction listing and stats."""

    def test_list_transactions_filters_and_order(self, wallet_svc, customer):
        wallet_svc.credit_wallet(customer.pk, '5')
        wallet_svc.credit_wallet(customer.pk, '50')
        wallet_svc.debit_wallet(customer.pk, '20')

        all_txns = list(wallet_svc.list_transactions(customer.pk))
        credits = wallet_svc.list_transactions(customer.pk, {'type': WalletTransaction.CREDIT})
        large = wallet_svc.list_transactions(customer.pk, {'min_amount': 10, 'max_amount': 30})

        assert [t.amount for t in all_txns] == [Decimal('20.000'), Decimal('50.000'), Decimal('5.000')]
        assert credits.count() == 2
        assert [t.amount for t in large] == [Decimal('20.000')]

    def test_wallet_stats(self, wallet_svc, customer, place_order):
        order = place_order()
        wallet_svc.credit_wallet(customer.pk, '40')
        wallet_svc.debit_wallet(customer.pk, '15.5')
        wallet_svc.refund_to_wallet(customer.pk, '2.25', order.pk)

        stats = wallet_svc.get_wallet_stats(customer.pk)

        assert stats['current_balance'] == Decimal('26.750')
        assert stats['total_credits'] == Decimal('40.000')
        assert stats['total_debits'] == Decimal('15.500')
        assert stats['total_refunds'] == Decimal('2.250')
        assert stats['total_transactions'] == 3

    def test_wallet_stats_without_wallet(self, wallet_svc, customer):
        stats = wallet_svc.get_wallet_stats(customer.pk)

        assert stats['current_balance'] == Decimal('0.000')
        assert stats['total_transactions'] == 0

    def test_get_all_wallets_paginates(self, wallet_svc, customer, vendor, admin_user):
        for user in (customer, vendor, admin_user):
            wallet_svc.get_or_create_wallet(user.pk)

        assert len(wallet_svc.get_all_wallets(limit=2)) == 2
        assert len(wallet_svc.get_all_wallets(limit=2, offset=2)) == 1
