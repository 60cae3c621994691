"""
Money helpers
Every persisted amount is a Decimal rounded to 3 places (BHD has 1000 fils)
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from core.exceptions import InvalidAmount

MONEY_PLACES = Decimal('0.001')
ZERO = Decimal('0.000')


def to_decimal(value) -> Decimal:
    """
    Convert int/float/str/Decimal to Decimal without float artefacts

    Raises:
        InvalidAmount: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmount(f'Invalid amount: {value!r}')

    if not amount.is_finite():
        raise InvalidAmount(f'Invalid amount: {value!r}')
    return amount


def round_money(value) -> Decimal:
    """Round half-up to 3 decimal places"""
    if value is None:
        return ZERO
    try:
        return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmount(f'Amount out of range: {value!r}')


def positive_money(value) -> Decimal:
    """Rounded amount that must be strictly positive"""
    amount = round_money(value)
    if amount <= 0:
        raise InvalidAmount(f'Amount must be greater than zero (got {value})')
    return amount
