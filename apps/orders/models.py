"""
Orders App Models
Order aggregate: priced line-item snapshot, totals, a status/payment state
machine and two append-only logs (status history, payment history)
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from core.utils.money import round_money
from core.utils.references import generate_order_number


# ==========================================
# ORDERS
# ==========================================

class Order(models.Model):
    """
    Customer order spanning one or more vendors' products
    """

    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    PREPARING_FOR_SHIPMENT = 'PREPARING_FOR_SHIPMENT'
    OUT_FOR_DELIVERY = 'OUT_FOR_DELIVERY'
    DELIVERED = 'DELIVERED'
    CANCELLED = 'CANCELLED'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (CONFIRMED, 'Confirmed'),
        (PREPARING_FOR_SHIPMENT, 'Preparing for Shipment'),
        (OUT_FOR_DELIVERY, 'Out for Delivery'),
        (DELIVERED, 'Delivered'),
        (CANCELLED, 'Cancelled'),
    ]

    # DELIVERED and CANCELLED are terminal
    ALLOWED_TRANSITIONS = {
        PENDING: (CONFIRMED, CANCELLED),
        CONFIRMED: (PREPARING_FOR_SHIPMENT, CANCELLED),
        PREPARING_FOR_SHIPMENT: (OUT_FOR_DELIVERY, CANCELLED),
        OUT_FOR_DELIVERY: (DELIVERED,),
        DELIVERED: (),
        CANCELLED: (),
    }

    # Statuses counted as "still in progress" for customers
    OPEN_STATUSES = (PENDING, CONFIRMED, PREPARING_FOR_SHIPMENT, OUT_FOR_DELIVERY)

    PAYMENT_PENDING = 'PENDING'
    PAYMENT_COMPLETED = 'COMPLETED'
    PAYMENT_FAILED = 'FAILED'
    PAYMENT_REFUNDED = 'REFUNDED'

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_COMPLETED, 'Completed'),
        (PAYMENT_FAILED, 'Failed'),
        (PAYMENT_REFUNDED, 'Refunded'),
    ]

    GATEWAY = 'GATEWAY'
    CASH_ON_DELIVERY = 'CASH_ON_DELIVERY'
    WALLET = 'WALLET'

    PAYMENT_METHOD_CHOICES = [
        (GATEWAY, 'Payment Gateway'),
        (CASH_ON_DELIVERY, 'Cash on Delivery'),
        (WALLET, 'Wallet'),
    ]

    # Gateway label stamped on payment history rows for wallet-paid orders
    WALLET_GATEWAY_LABEL = 'Wallet System'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='orders')
    order_number = models.CharField(max_length=40, unique=True, blank=True)

    # Shipping Address
    shipping_full_name = models.CharField(max_length=100)
    shipping_mobile_number = models.CharField(max_length=30)
    shipping_country = models.CharField(max_length=100)
    shipping_address = models.CharField(max_length=500)
    shipping_city = models.CharField(max_length=100)
    shipping_state = models.CharField(max_length=100)
    shipping_zip_code = models.CharField(max_length=20)

    # Totals (caller-supplied except grand_total)
    currency = models.CharField(max_length=3, default='BHD')
    total_price = models.DecimalField(
        max_digits=14, decimal_places=3, validators=[MinValueValidator(Decimal('0'))]
    )
    shipping_fee = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal('0.000'), validators=[MinValueValidator(Decimal('0'))]
    )
    discount = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal('0.000'), validators=[MinValueValidator(Decimal('0'))]
    )
    tax = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal('0.000'), validators=[MinValueValidator(Decimal('0'))]
    )
    grand_total = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0.000'),
        editable=False,
        help_text="total_price + shipping_fee + tax - discount, recomputed on every save"
    )
    promo_code = models.CharField(max_length=50, blank=True)

    # Delivery
    estimated_delivery_date = models.DateTimeField(null=True, blank=True)
    actual_delivery_date = models.DateTimeField(null=True, blank=True)
    shipping_method_id = models.CharField(max_length=100, blank=True)
    tracking_number = models.CharField(max_length=100, blank=True)
    order_notes = models.TextField(blank=True)

    # State
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=PENDING)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    payment_method_used = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default=GATEWAY)
    transaction_id = models.CharField(max_length=100, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'status'], name='order_user_status_idx'),
            models.Index(fields=['status', 'payment_status'], name='order_status_payment_idx'),
        ]

    def __str__(self):
        return f"Order #{self.order_number} - {self.status}"

    def compute_grand_total(self) -> Decimal:
        return round_money(
            round_money(self.total_price)
            + round_money(self.shipping_fee)
            + round_money(self.tax)
            - round_money(self.discount)
        )

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = generate_order_number()
        self.order_number = self.order_number.upper()

        self.total_price = round_money(self.total_price)
        self.shipping_fee = round_money(self.shipping_fee)
        self.tax = round_money(self.tax)
        self.discount = round_money(self.discount)
        self.grand_total = self.compute_grand_total()

        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'grand_total'}

        super().save(*args, **kwargs)

    def can_transition_to(self, new_status) -> bool:
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, ())

    @property
    def can_be_cancelled(self):
        return self.status not in (self.DELIVERED, self.CANCELLED, self.OUT_FOR_DELIVERY)

    @property
    def is_paid(self):
        return self.payment_status == self.PAYMENT_COMPLETED

    @property
    def paid_via_wallet(self):
        """Completed payment with a wallet-system entry in the payment log"""
        return self.is_paid and self.payment_history.filter(
            payment_gateway=self.WALLET_GATEWAY_LABEL
        ).exists()

    @property
    def shipping_address_display(self):
        return ', '.join(
            part for part in [
                self.shipping_address, self.shipping_city, self.shipping_state,
                self.shipping_zip_code, self.shipping_country,
            ] if part
        )

    def add_status_history(self, status, note=''):
        return OrderStatusHistory.objects.create(order=self, status=status, note=note or '')


class OrderItem(models.Model):
    """
    Line item with the unit price frozen at checkout
    """
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.PROTECT, related_name='order_items')
    variation = models.ForeignKey(
        'catalog.ProductVariation',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items'
    )
    product_name = models.CharField(max_length=200, blank=True)

    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=14, decimal_places=3)
    total = models.DecimalField(max_digits=14, decimal_places=3)

    class Meta:
        verbose_name = "Order Item"
        verbose_name_plural = "Order Items"
        ordering = ['id']

    def __str__(self):
        return f"{self.product_name or self.product_id} x{self.quantity}"

    def save(self, *args, **kwargs):
        self.price = round_money(self.price)
        self.total = round_money(self.price * self.quantity)
        super().save(*args, **kwargs)


class OrderStatusHistory(models.Model):
    """
    Append-only status log
    """
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='status_history')
    status = models.CharField(max_length=30, choices=Order.STATUS_CHOICES)
    note = models.CharField(max_length=500, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = "Status History"
        verbose_name_plural = "Status History"
        ordering = ['timestamp', 'id']

    def __str__(self):
        return f"{self.order.order_number}: {self.status}"


class PaymentHistory(models.Model):
    """
    Append-only log of payment attempts and confirmations
    """
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='payment_history')
    payment_gateway = models.CharField(max_length=100)
    gateway_transaction_id = models.CharField(max_length=100)
    session_id = models.CharField(max_length=100, blank=True)
    result_indicator = models.CharField(max_length=100, blank=True)
    currency = models.CharField(max_length=3, default='BHD')
    payment_status = models.CharField(max_length=20, choices=Order.PAYMENT_STATUS_CHOICES)
    payment_method = models.CharField(max_length=50, blank=True)
    payment_date = models.DateTimeField(default=timezone.now)
    gateway_response = models.JSONField(default=dict, blank=True)
    refund_details = models.JSONField(default=dict, blank=True)

    class Meta:
        verbose_name = "Payment History"
        verbose_name_plural = "Payment History"
        ordering = ['payment_date', 'id']

    def __str__(self):
        return f"{self.payment_gateway} {self.gateway_transaction_id} ({self.payment_status})"
