"""Tests for the shared money helpers, references and error taxonomy."""

from decimal import Decimal

import pytest

from core.exceptions import (
    BusinessRuleViolation, InvalidAmount, MarketplaceError, NotFound, OrderCreationError,
    PendingRequestExists, ProductNotFound, ValidationFailed,
)
from core.utils.email_service import clean_recipients
from core.utils.money import positive_money, round_money
from core.utils.references import generate_order_number, generate_transaction_id


class TestMoney:

    @pytest.mark.parametrize('value,expected', [
        (1, '1.000'),
        (0.1 + 0.2, '0.300'),
        ('2.0005', '2.001'),
        ('2.0004', '2.000'),
        (Decimal('-1.2345'), '-1.235'),
        (None, '0.000'),
    ])
    def test_round_money(self, value, expected):
        assert round_money(value) == Decimal(expected)

    @pytest.mark.parametrize('value', ['twelve', 'NaN', 'Infinity', '-Infinity', float('nan'), Decimal('sNaN'), '1e40'])
    def test_garbage_is_invalid_amount(self, value):
        with pytest.raises(InvalidAmount):
            round_money(value)

    def test_nan_is_not_positive_money(self):
        with pytest.raises(InvalidAmount):
            positive_money(Decimal('NaN'))

    def test_positive_money(self):
        assert positive_money('0.001') == Decimal('0.001')
        with pytest.raises(InvalidAmount):
            positive_money('0.0001')


class TestReferences:

    def test_order_numbers_are_uppercase_and_distinct(self):
        numbers = {generate_order_number() for _ in range(50)}

        assert len(numbers) == 50
        assert all(n == n.upper() and n.startswith('ORD-') for n in numbers)

    def test_transaction_id_carries_kind(self):
        assert generate_transaction_id('Refund').startswith('TXN-REFUND-')


class TestExceptions:

    def test_taxonomy(self):
        assert issubclass(InvalidAmount, ValidationFailed)
        assert issubclass(ProductNotFound, NotFound)
        assert issubclass(ProductNotFound, OrderCreationError)
        assert issubclass(PendingRequestExists, BusinessRuleViolation)
        assert issubclass(BusinessRuleViolation, MarketplaceError)

    def test_default_message(self):
        error = PendingRequestExists()

        assert error.message.startswith('You already have a pending payout request')
        assert str(error) == error.message


class TestRecipients:

    def test_blank_recipients_dropped(self):
        assert clean_recipients([' a@b.test ', '', None]) == ['a@b.test']
        assert clean_recipients('c@d.test') == ['c@d.test']

    def test_no_recipients(self):
        with pytest.raises(ValueError):
            clean_recipients(['  '])
