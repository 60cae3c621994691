"""
Catalog Models
Products and their variations. Orders read prices from here at checkout and
snapshot them; nothing in the ledger reads the catalog afterwards.
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


# ==========================================
# PRODUCTS
# ==========================================

class Product(models.Model):
    """
    Vendor product with a base price and an optional time-boxed special price
    """

    vendor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='products',
        help_text="User with the vendor role who sells this product"
    )

    # Basic Info
    product_name = models.CharField(max_length=200)
    sku = models.CharField(max_length=100, unique=True, verbose_name="SKU")
    description = models.TextField(blank=True)

    # Pricing
    currency = models.CharField(max_length=3, default='BHD')
    price_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        validators=[MinValueValidator(Decimal('0'))]
    )
    special_price = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Applies only between the starting and ending dates"
    )
    special_price_starting_date = models.DateTimeField(null=True, blank=True)
    special_price_ending_date = models.DateTimeField(null=True, blank=True)

    # Inventory
    stock = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Product"
        verbose_name_plural = "Products"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['vendor', 'is_active'], name='product_vendor_active_idx'),
        ]

    def __str__(self):
        return self.product_name

    def has_active_special_price(self, now=None) -> bool:
        """Special price applies when start <= now <= end (both bounds inclusive)"""
        if not (self.special_price and self.special_price_starting_date and self.special_price_ending_date):
            return False
        now = now or timezone.now()
        return self.special_price_starting_date <= now <= self.special_price_ending_date

    def current_price(self, now=None) -> Decimal:
        if self.has_active_special_price(now):
            return self.special_price
        return self.price_per_unit

    @property
    def is_in_stock(self):
        return self.stock > 0


class ProductVariation(models.Model):
    """
    Size/colour/etc. variant carrying its own price
    """
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variations')
    name = models.CharField(max_length=100, help_text="e.g. 'Large / Red'")
    sku = models.CharField(max_length=100, blank=True, verbose_name="SKU")
    price = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        validators=[MinValueValidator(Decimal('0'))]
    )
    stock = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Product Variation"
        verbose_name_plural = "Product Variations"
        ordering = ['product', 'name']

    def __str__(self):
        return f"{self.product.product_name} - {self.name}"


def effective_unit_price(product, variation=None, now=None) -> Decimal:
    """
    Price a cart line is charged at right now.

    Base price, replaced by the special price while its window is open,
    replaced again by the variation's own price when a variation is selected.
    """
    if variation is not None:
        return variation.price
    return product.current_price(now)
