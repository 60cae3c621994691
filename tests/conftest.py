"""Pytest fixtures for marketplace tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.catalog.models import Product, ProductVariation
from apps.orders.services import EmailService, NotificationService, OrderService
from apps.payouts.services import PayoutService
from apps.wallet.services import WalletService

User = get_user_model()


@pytest.fixture(autouse=True)
def ledger_settings(settings):
    settings.LEDGER_CURRENCY = 'BHD'
    settings.ADMIN_EMAIL = 'ops@souq.test'
    settings.SITE_URL = 'https://souq.test'
    settings.USE_MOCK_NOTIFICATIONS = True
    settings.USE_MOCK_SHIPPING = True
    return settings


@pytest.fixture
def customer(db):
    return User.objects.create_user(email='layla@souq.test', password='pass1234', name='Layla Ahmed')


@pytest.fixture
def vendor(db):
    return User.objects.create_vendor(email='pearl@souq.test', password='pass1234', business_name='Pearl Crafts')


@pytest.fixture
def second_vendor(db):
    return User.objects.create_vendor(email='dates@souq.test', password='pass1234', business_name='Date Palace')


@pytest.fixture
def admin_user(db):
    return User.objects.create_superuser(email='admin@souq.test', password='pass1234', name='Back Office')


@pytest.fixture
def product(vendor):
    return Product.objects.create(
        vendor=vendor,
        product_name='Pearl Necklace',
        sku='PRL-001',
        price_per_unit=Decimal('10.000'),
        stock=50,
    )


@pytest.fixture
def second_product(second_vendor):
    return Product.objects.create(
        vendor=second_vendor,
        product_name='Khalas Dates 1kg',
        sku='DAT-001',
        price_per_unit=Decimal('4.250'),
        stock=100,
    )


@pytest.fixture
def discounted_product(vendor):
    now = timezone.now()
    return Product.objects.create(
        vendor=vendor,
        product_name='Pearl Earrings',
        sku='PRL-002',
        price_per_unit=Decimal('8.000'),
        special_price=Decimal('6.500'),
        special_price_starting_date=now - timedelta(days=1),
        special_price_ending_date=now + timedelta(days=1),
        stock=10,
    )


@pytest.fixture
def variation(product):
    return ProductVariation.objects.create(product=product, name='Gold Clasp', price=Decimal('12.750'), stock=5)


@pytest.fixture
def shipping_info():
    return {
        'full_name': 'Layla Ahmed',
        'mobile_number': '+97333334444',
        'country': 'Bahrain',
        'address': 'Building 12, Road 34, Block 305',
        'city': 'Manama',
        'state': 'Capital',
        'zip_code': '305',
    }


@pytest.fixture
def wallet_svc():
    return WalletService(currency='BHD')


@pytest.fixture
def payout_svc(admin_user, wallet_svc):
    return PayoutService(admin_user_id=admin_user.pk, wallet=wallet_svc, currency='BHD')


@pytest.fixture
def notifier():
    return NotificationService(email=EmailService(use_mock=True))


@pytest.fixture
def order_svc(wallet_svc, payout_svc, notifier):
    return OrderService(wallet=wallet_svc, payouts=payout_svc, notifications=notifier)


@pytest.fixture
def place_order(order_svc, customer, product, shipping_info):
    """Create a two-unit order of `product` (20.000 subtotal)."""

    def _place(quantity=2, total_price='20.000', shipping_fee='1.000', tax='0.500', discount='0', **kwargs):
        return order_svc.create_order(
            customer.pk,
            [{'product_id': product.pk, 'quantity': quantity}],
            shipping_info,
            {'total_price': total_price, 'shipping_fee': shipping_fee, 'tax': tax, 'discount': discount},
            **kwargs
        )

    return _place


@pytest.fixture
def advance(order_svc):
    """Walk an order through the given statuses in turn."""

    def _advance(order, *statuses):
        for status in statuses:
            order = order_svc.update_order_status(order.pk, status)
        return order

    return _advance
