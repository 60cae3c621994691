"""
Payouts App Models
Vendor earnings derived from delivered orders, the three-bucket vendor wallet
(available / pending / withdrawn) and the payout request workflow
"""

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


VENDOR_SHARE_RATE = Decimal('0.90')
PLATFORM_COMMISSION_RATE = Decimal('0.10')


# ==========================================
# EARNINGS
# ==========================================

class VendorEarning(models.Model):
    """
    One vendor's cut of one delivered order. At most one row per (vendor, order).
    """

    PENDING = 'PENDING'
    PAID = 'PAID'

    PAYOUT_STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (PAID, 'Paid'),
    ]

    vendor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='earnings')
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='vendor_earnings'
    )
    order_number = models.CharField(max_length=40)

    # Amounts
    order_amount = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        help_text="Sum of this vendor's line totals in the order"
    )
    vendor_share = models.DecimalField(max_digits=14, decimal_places=3, help_text="90% of order amount")
    platform_commission = models.DecimalField(max_digits=14, decimal_places=3, help_text="10% of order amount")
    currency = models.CharField(max_length=3, default='BHD')

    earned_date = models.DateTimeField(default=timezone.now, db_index=True)
    payout_status = models.CharField(max_length=10, choices=PAYOUT_STATUS_CHOICES, default=PENDING)
    payout = models.ForeignKey(
        'PayoutRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='earnings'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Vendor Earning"
        verbose_name_plural = "Vendor Earnings"
        ordering = ['-earned_date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['vendor', 'order'], name='unique_vendor_earning_per_order'),
        ]
        indexes = [
            models.Index(fields=['vendor', 'payout_status'], name='earning_vendor_status_idx'),
        ]

    def __str__(self):
        return f"{self.order_number} - {self.vendor_share} {self.currency} ({self.payout_status})"


# ==========================================
# VENDOR WALLET
# ==========================================

class VendorWallet(models.Model):
    """
    available + pending <= total_earned; total_withdrawn only grows on payout completion
    """
    vendor = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='vendor_wallet')

    # Balances
    available_balance = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0.000'),
        help_text="Can be requested for payout"
    )
    pending_balance = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0.000'),
        help_text="Locked by an outstanding payout request"
    )
    total_earned = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0.000'))
    total_withdrawn = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0.000'))
    currency = models.CharField(max_length=3, default='BHD')
    last_payout_date = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Vendor Wallet"
        verbose_name_plural = "Vendor Wallets"
        ordering = ['-total_earned', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_balance__gte=0)
                & models.Q(pending_balance__gte=0)
                & models.Q(total_earned__gte=0)
                & models.Q(total_withdrawn__gte=0),
                name='vendor_wallet_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.vendor.email}'s Vendor Wallet - {self.available_balance} {self.currency}"


# ==========================================
# PAYOUT REQUESTS
# ==========================================

class PayoutRequest(models.Model):
    """
    Vendor withdrawal request, approved and settled by an admin
    """

    BANK_TRANSFER = 'BANK_TRANSFER'
    PAYPAL = 'PAYPAL'
    STRIPE = 'STRIPE'

    PAYOUT_METHOD_CHOICES = [
        (BANK_TRANSFER, 'Bank Transfer'),
        (PAYPAL, 'PayPal'),
        (STRIPE, 'Stripe'),
    ]

    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    PROCESSING = 'PROCESSING'
    COMPLETED = 'COMPLETED'
    REJECTED = 'REJECTED'
    FAILED = 'FAILED'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (PROCESSING, 'Processing'),
        (COMPLETED, 'Completed'),
        (REJECTED, 'Rejected'),
        (FAILED, 'Failed'),
    ]

    # A vendor may hold only one request in these statuses
    OUTSTANDING_STATUSES = (PENDING, APPROVED, PROCESSING)
    # Statuses an admin can move a request out of
    PROCESSABLE_STATUSES = (PENDING, APPROVED)
    # Statuses an admin can move a request into
    TARGET_STATUSES = (APPROVED, COMPLETED, REJECTED, FAILED)

    vendor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='payout_requests')
    requested_amount = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        validators=[MinValueValidator(Decimal('0.001'))]
    )
    currency = models.CharField(max_length=3, default='BHD')
    payout_method = models.CharField(max_length=20, choices=PAYOUT_METHOD_CHOICES)

    # Method details
    bank_account_holder_name = models.CharField(max_length=200, blank=True)
    bank_account_number = models.CharField(max_length=50, blank=True)
    bank_name = models.CharField(max_length=100, blank=True)
    bank_iban = models.CharField(max_length=50, blank=True, verbose_name="IBAN")
    bank_swift_code = models.CharField(max_length=20, blank=True, verbose_name="SWIFT code")
    paypal_email = models.EmailField(blank=True)
    stripe_account_id = models.CharField(max_length=100, blank=True)

    # Workflow
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    requested_date = models.DateTimeField(default=timezone.now)
    processed_date = models.DateTimeField(null=True, blank=True)
    completed_date = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='processed_payouts'
    )
    transaction_reference = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Payout Request"
        verbose_name_plural = "Payout Requests"
        ordering = ['-requested_date', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['vendor'],
                condition=models.Q(status__in=['PENDING', 'APPROVED', 'PROCESSING']),
                name='one_outstanding_payout_per_vendor',
            ),
        ]

    def __str__(self):
        return f"Payout #{self.pk} - {self.requested_amount} {self.currency} ({self.status})"

    @property
    def is_outstanding(self):
        return self.status in self.OUTSTANDING_STATUSES

    def method_detail_errors(self):
        """Missing fields for the chosen payout method, as {field: message}"""
        errors = {}
        if self.payout_method == self.BANK_TRANSFER:
            for field in ('bank_account_holder_name', 'bank_account_number', 'bank_name'):
                if not getattr(self, field):
                    errors[field] = 'Required for bank transfer payouts.'
        elif self.payout_method == self.PAYPAL:
            if not self.paypal_email:
                errors['paypal_email'] = 'Required for PayPal payouts.'
        elif self.payout_method == self.STRIPE:
            if not self.stripe_account_id:
                errors['stripe_account_id'] = 'Required for Stripe payouts.'
        else:
            errors['payout_method'] = f'Unknown payout method: {self.payout_method}'
        return errors

    def clean(self):
        errors = self.method_detail_errors()
        if errors:
            raise ValidationError(errors)
