"""
Wallet Ledger Service
Credits, debits and refunds against a user's wallet

Every mutation runs inside transaction.atomic() and re-reads the wallet row
with select_for_update() before touching the balance, so the balance update
and the appended journal line commit together or not at all.

Settings Used:
- LEDGER_CURRENCY (default currency for new wallets)
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q, Sum

from apps.wallet.models import Wallet, WalletTransaction
from core.exceptions import InsufficientBalance, UserNotFound, ValidationFailed, WalletNotFound
from core.utils.money import ZERO, positive_money, round_money
from core.utils.references import generate_transaction_id

logger = logging.getLogger(__name__)

User = get_user_model()


class WalletService:
    """
    Service class for the per-user wallet ledger
    """

    def __init__(self, currency: Optional[str] = None):
        self.currency = currency or getattr(settings, 'LEDGER_CURRENCY', 'BHD')

    # ==========================================
    # WALLET LOOKUP
    # ==========================================

    def get_or_create_wallet(self, user_id) -> Wallet:
        """
        Return the user's wallet, creating an empty one on first access

        Raises:
            UserNotFound: If there is no such user
        """
        wallet = Wallet.objects.filter(user_id=user_id).first()
        if wallet is not None:
            return wallet

        if not User.objects.filter(pk=user_id).exists():
            raise UserNotFound(f'User {user_id} not found')

        wallet, created = Wallet.objects.get_or_create(
            user_id=user_id,
            defaults={'currency': self.currency}
        )
        if created:
            logger.info(f'Wallet created for user {user_id}')
        return wallet

    def get_wallet(self, user_id) -> Optional[Wallet]:
        return Wallet.objects.select_related('user').filter(user_id=user_id).first()

    def get_wallet_balance(self, user_id) -> Dict:
        wallet = self.get_or_create_wallet(user_id)
        return {
            'balance': wallet.balance,
            'currency': wallet.currency,
            'user_id': user_id,
        }

    def has_sufficient_balance(self, user_id, amount) -> bool:
        wallet = Wallet.objects.filter(user_id=user_id).first()
        if wallet is None:
            return False
        return wallet.balance >= round_money(amount)

    def _lock_wallet(self, user_id, create: bool = True) -> Wallet:
        """
        Fresh, row-locked copy of the wallet. Must be called inside atomic().
        """
        if create:
            self.get_or_create_wallet(user_id)
        try:
            return Wallet.objects.select_for_update().get(user_id=user_id)
        except Wallet.DoesNotExist:
            raise WalletNotFound(f'Wallet not found for user {user_id}')

    def _append(self, wallet: Wallet, transaction_type: str, amount: Decimal, description: str, **extra) -> WalletTransaction:
        """Apply `amount` to the locked wallet and journal it"""
        balance_before = wallet.balance
        if transaction_type in WalletTransaction.INFLOW_TYPES:
            balance_after = round_money(balance_before + amount)
        else:
            balance_after = round_money(balance_before - amount)

        wallet.balance = balance_after
        wallet.save(update_fields=['balance', 'updated_at'])

        return WalletTransaction.objects.create(
            wallet=wallet,
            transaction_id=generate_transaction_id(transaction_type),
            transaction_type=transaction_type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description,
            status=WalletTransaction.COMPLETED,
            **extra
        )

    # ==========================================
    # LEDGER MUTATIONS
    # ==========================================

    def credit_wallet(
        self,
        user_id,
        amount,
        payment_method: str = WalletTransaction.CARD,
        description: str = '',
        gateway_transaction_id: Optional[str] = None,
        metadata: Optional[Dict] = None
    ) -> Wallet:
        """
        Add money to a wallet (top-up, commission credit)

        Raises:
            InvalidAmount: If amount is not positive
            ValidationFailed: If payment_method is unknown
        """
        amount = positive_money(amount)
        valid_methods = dict(WalletTransaction.PAYMENT_METHOD_CHOICES)
        if payment_method not in valid_methods:
            raise ValidationFailed(f'Invalid payment method: {payment_method}')

        with transaction.atomic():
            wallet = self._lock_wallet(user_id)
            txn = self._append(
                wallet,
                WalletTransaction.CREDIT,
                amount,
                description or f'Wallet credited via {payment_method}',
                payment_method=payment_method,
                gateway_transaction_id=gateway_transaction_id or '',
                metadata=metadata or {},
            )

        logger.info(
            f'Wallet credited: user {user_id} +{amount} {wallet.currency} '
            f'({txn.balance_before} -> {txn.balance_after})'
        )
        return wallet

    def debit_wallet(self, user_id, amount, description: str = '', order_id=None) -> Wallet:
        """
        Take money out of a wallet (order payment)

        Raises:
            InvalidAmount: If amount is not positive
            WalletNotFound: If the user has no wallet yet
            InsufficientBalance: If the balance is lower than amount
        """
        amount = positive_money(amount)

        with transaction.atomic():
            wallet = self._lock_wallet(user_id, create=False)

            if wallet.balance < amount:
                raise InsufficientBalance(
                    f'Insufficient wallet balance. Available: {wallet.balance} {wallet.currency}, '
                    f'Required: {amount} {wallet.currency}'
                )

            txn = self._append(
                wallet,
                WalletTransaction.DEBIT,
                amount,
                description or 'Wallet debit',
                order_id=order_id,
            )

        logger.info(
            f'Wallet debited: user {user_id} -{amount} {wallet.currency} '
            f'({txn.balance_before} -> {txn.balance_after})'
        )
        return wallet

    def refund_to_wallet(self, user_id, amount, order_id, description: str = '') -> Wallet:
        """Credit mechanics, journaled as a Refund linked to the order"""
        amount = positive_money(amount)

        with transaction.atomic():
            wallet = self._lock_wallet(user_id)
            txn = self._append(
                wallet,
                WalletTransaction.REFUND,
                amount,
                description or 'Order refund',
                order_id=order_id,
            )

        logger.info(
            f'Wallet refunded: user {user_id} +{amount} {wallet.currency} for order {order_id} '
            f'({txn.balance_before} -> {txn.balance_after})'
        )
        return wallet

    # ==========================================
    # READS
    # ==========================================

    def list_transactions(self, user_id, filters: Optional[Dict] = None):
        """
        Newest-first journal for a user

        Args:
            filters: Optional keys 'type', 'status', 'min_amount', 'max_amount',
                     'start_date', 'end_date'
        """
        filters = filters or {}
        qs = WalletTransaction.objects.filter(wallet__user_id=user_id)

        if filters.get('type'):
            qs = qs.filter(transaction_type=filters['type'])
        if filters.get('status'):
            qs = qs.filter(status=filters['status'])
        if filters.get('min_amount') is not None:
            qs = qs.filter(amount__gte=round_money(filters['min_amount']))
        if filters.get('max_amount') is not None:
            qs = qs.filter(amount__lte=round_money(filters['max_amount']))
        if filters.get('start_date'):
            qs = qs.filter(created_at__gte=filters['start_date'])
        if filters.get('end_date'):
            qs = qs.filter(created_at__lte=filters['end_date'])

        return qs.order_by('-created_at', '-id')

    def get_wallet_stats(self, user_id) -> Dict:
        wallet = Wallet.objects.filter(user_id=user_id).first()

        if wallet is None:
            return {
                'current_balance': ZERO,
                'total_credits': ZERO,
                'total_debits': ZERO,
                'total_refunds': ZERO,
                'total_transactions': 0,
                'currency': self.currency,
            }

        completed = Q(transactions__status=WalletTransaction.COMPLETED)
        totals = Wallet.objects.filter(pk=wallet.pk).aggregate(
            credits=Sum('transactions__amount', filter=completed & Q(transactions__transaction_type=WalletTransaction.CREDIT)),
            debits=Sum('transactions__amount', filter=completed & Q(transactions__transaction_type=WalletTransaction.DEBIT)),
            refunds=Sum('transactions__amount', filter=completed & Q(transactions__transaction_type=WalletTransaction.REFUND)),
            count=Count('transactions'),
        )

        return {
            'current_balance': wallet.balance,
            'total_credits': round_money(totals['credits']),
            'total_debits': round_money(totals['debits']),
            'total_refunds': round_money(totals['refunds']),
            'total_transactions': totals['count'],
            'currency': wallet.currency,
        }

    def get_all_wallets(self, limit: int = 50, offset: int = 0) -> List[Wallet]:
        qs = Wallet.objects.select_related('user').order_by('-created_at', '-id')
        return list(qs[offset:offset + limit])

    # ==========================================
    # AUDIT
    # ==========================================

    def audit_wallet(self, wallet: Wallet) -> List[str]:
        """
        Check the journal against the stored balance.

        Returns a list of human-readable problems (empty when consistent).
        """
        problems = []
        running = ZERO
        last = None

        for txn in wallet.transactions.order_by('id'):
            expected_after = round_money(txn.balance_before + txn.signed_amount)
            if txn.balance_after != expected_after:
                problems.append(
                    f'{txn.transaction_id}: balance_after {txn.balance_after} != '
                    f'{txn.balance_before} {"+" if txn.signed_amount > 0 else "-"} {txn.amount}'
                )
            if txn.balance_before != running:
                problems.append(
                    f'{txn.transaction_id}: balance_before {txn.balance_before} does not follow previous {running}'
                )
            running = round_money(running + txn.signed_amount)
            last = txn

        expected_balance = last.balance_after if last else ZERO
        if wallet.balance != expected_balance:
            problems.append(f'balance {wallet.balance} != last balance_after {expected_balance}')
        if wallet.balance != running:
            problems.append(f'balance {wallet.balance} != signed sum of journal {running}')
        if wallet.balance < 0:
            problems.append(f'negative balance {wallet.balance}')

        return problems
