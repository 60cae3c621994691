"""
Wallet App Models
Single-balance wallet per user with an append-only transaction journal
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


# ==========================================
# WALLET
# ==========================================

class Wallet(models.Model):
    """
    Customer wallet (also used for the platform's admin commission wallet).
    `balance` always equals `balance_after` of the newest transaction.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='wallet'
    )
    balance = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0.000'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    currency = models.CharField(max_length=3, default='BHD')
    is_active = models.BooleanField(default=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Wallet"
        verbose_name_plural = "Wallets"
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(balance__gte=0),
                name='wallet_balance_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.user.email}'s Wallet - {self.balance} {self.currency}"

    @property
    def last_transaction(self):
        return self.transactions.order_by('-id').first()


class WalletTransaction(models.Model):
    """
    One journal line. Rows are only ever inserted, never edited.
    """

    CREDIT = 'Credit'
    DEBIT = 'Debit'
    REFUND = 'Refund'
    WITHDRAWAL = 'Withdrawal'

    TRANSACTION_TYPE_CHOICES = [
        (CREDIT, 'Credit'),
        (DEBIT, 'Debit'),
        (REFUND, 'Refund'),
        (WITHDRAWAL, 'Withdrawal'),
    ]

    # Types that add to the balance; the rest subtract
    INFLOW_TYPES = (CREDIT, REFUND)

    PENDING = 'Pending'
    COMPLETED = 'Completed'
    FAILED = 'Failed'
    CANCELLED = 'Cancelled'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (COMPLETED, 'Completed'),
        (FAILED, 'Failed'),
        (CANCELLED, 'Cancelled'),
    ]

    CARD = 'Card'
    BANK_TRANSFER = 'Bank Transfer'
    MASTERCARD_GATEWAY = 'Mastercard Gateway'

    PAYMENT_METHOD_CHOICES = [
        (CARD, 'Card'),
        (BANK_TRANSFER, 'Bank Transfer'),
        (MASTERCARD_GATEWAY, 'Mastercard Gateway'),
    ]

    wallet = models.ForeignKey(Wallet, on_delete=models.PROTECT, related_name='transactions')
    transaction_id = models.CharField(max_length=64, unique=True)

    # Transaction Details
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        validators=[MinValueValidator(Decimal('0.001'))]
    )
    balance_before = models.DecimalField(max_digits=14, decimal_places=3)
    balance_after = models.DecimalField(max_digits=14, decimal_places=3)
    description = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=COMPLETED)

    # References
    payment_method = models.CharField(max_length=30, choices=PAYMENT_METHOD_CHOICES, blank=True)
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='wallet_transactions'
    )
    gateway_transaction_id = models.CharField(max_length=100, blank=True)

    # Metadata
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = "Wallet Transaction"
        verbose_name_plural = "Wallet Transactions"
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name='wallet_txn_amount_positive',
            ),
        ]

    def __str__(self):
        return f"{self.transaction_type} - {self.amount} - {self.status}"

    @property
    def signed_amount(self) -> Decimal:
        if self.transaction_type in self.INFLOW_TYPES:
            return self.amount
        return -self.amount
