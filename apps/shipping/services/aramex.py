"""
Aramex Rate Calculator Integration
Quotes a shipping price for a cart before checkout
Documentation: https://www.aramex.com/developers

Settings Used:
- ARAMEX_API_URL
- ARAMEX_USERNAME, ARAMEX_PASSWORD
- ARAMEX_ACCOUNT_NUMBER, ARAMEX_ACCOUNT_PIN
- ARAMEX_ACCOUNT_ENTITY, ARAMEX_ACCOUNT_COUNTRY_CODE
- ARAMEX_ORIGIN_CITY, ARAMEX_ORIGIN_COUNTRY_CODE
- USE_MOCK_SHIPPING (set to True for testing without real API)
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import requests
from django.conf import settings

from core.exceptions import InvalidAmount
from core.utils.money import round_money

logger = logging.getLogger(__name__)

# cm^3 per kg
VOLUMETRIC_DIVISOR = 5000

COUNTRY_CODES = {
    'bahrain': 'BH',
    'saudi arabia': 'SA',
    'uae': 'AE',
    'united arab emirates': 'AE',
    'kuwait': 'KW',
    'oman': 'OM',
    'qatar': 'QA',
}


class ShippingRateError(Exception):
    """Rate calculator rejected the request or could not be reached"""
    pass


def volumetric_weight(length, width, height) -> float:
    return (float(length) * float(width) * float(height)) / VOLUMETRIC_DIVISOR


def package_details(cart_items: List[Dict]) -> Dict:
    """
    Treat the cart as one stacked package: longest length, widest width,
    heights added up. Chargeable weight is the larger of actual and
    volumetric weight.
    """
    actual_weight = sum(float(item.get('weight') or 0) for item in cart_items)
    length = max(float(item.get('length') or 0) for item in cart_items)
    width = max(float(item.get('width') or 0) for item in cart_items)
    height = sum(float(item.get('height') or 0) for item in cart_items)

    return {
        'actual_weight': round(actual_weight, 3),
        'chargeable_weight': round(max(actual_weight, volumetric_weight(length, width, height)), 3),
        'length': length,
        'width': width,
        'height': height,
        'pieces': len(cart_items),
    }


def country_code(country: str) -> str:
    """Map a country name (or 2-letter code) to its ISO code, defaulting to Bahrain"""
    value = (country or '').strip()
    if len(value) == 2 and value.isalpha():
        return value.upper()
    return COUNTRY_CODES.get(value.lower(), 'BH')


def parse_address(address: str) -> Tuple[str, str, str]:
    """Split a comma separated address into the three lines the API expects"""
    parts = [part.strip() for part in (address or '').split(',') if part.strip()]
    parts += ['N/A'] * (3 - len(parts))
    return parts[0], parts[1], parts[2]


class AramexRateService:
    """
    Service class for the Aramex rate calculator
    """

    def __init__(self, use_mock: Optional[bool] = None):
        self.api_url = getattr(settings, 'ARAMEX_API_URL', '')
        self.username = getattr(settings, 'ARAMEX_USERNAME', '')
        self.password = getattr(settings, 'ARAMEX_PASSWORD', '')
        self.account_number = getattr(settings, 'ARAMEX_ACCOUNT_NUMBER', '')
        self.account_pin = getattr(settings, 'ARAMEX_ACCOUNT_PIN', '')
        self.account_entity = getattr(settings, 'ARAMEX_ACCOUNT_ENTITY', 'BAH')
        self.account_country_code = getattr(settings, 'ARAMEX_ACCOUNT_COUNTRY_CODE', 'BH')
        self.origin_city = getattr(settings, 'ARAMEX_ORIGIN_CITY', 'Manama')
        self.origin_country_code = getattr(settings, 'ARAMEX_ORIGIN_COUNTRY_CODE', 'BH')
        self.currency = getattr(settings, 'LEDGER_CURRENCY', 'BHD')

        if use_mock is None:
            use_mock = getattr(settings, 'USE_MOCK_SHIPPING', True)
        self.use_mock = use_mock

        if not self.use_mock and not (self.username and self.account_number):
            logger.warning('Aramex credentials not configured. Using mock mode.')
            self.use_mock = True

    def is_domestic(self, destination_code: str) -> bool:
        return destination_code == self.origin_country_code

    def _product_type(self, destination_code: str) -> Tuple[str, str]:
        """(ProductGroup, ProductType): on-demand domestic or priority express"""
        if self.is_domestic(destination_code):
            return 'DOM', 'OND'
        return 'EXP', 'PDX'

    def _build_payload(self, package: Dict, destination: Dict, destination_code: str) -> Dict:
        line1, line2, line3 = parse_address(destination.get('address', ''))
        product_group, product_type = self._product_type(destination_code)

        return {
            'ClientInfo': {
                'UserName': self.username,
                'Password': self.password,
                'Version': 'v1.0',
                'AccountNumber': self.account_number,
                'AccountPin': self.account_pin,
                'AccountEntity': self.account_entity,
                'AccountCountryCode': self.account_country_code,
            },
            'OriginAddress': {
                'City': self.origin_city,
                'CountryCode': self.origin_country_code,
            },
            'DestinationAddress': {
                'Line1': line1,
                'Line2': line2,
                'Line3': line3,
                'City': destination.get('city', ''),
                'PostCode': destination.get('post_code', ''),
                'CountryCode': destination_code,
            },
            'ShipmentDetails': {
                'DescriptionOfGoods': 'General Goods',
                'GoodsOriginCountry': self.origin_country_code,
                'PaymentOptions': '',
                'ActualWeight': {'Value': str(package['actual_weight']), 'Unit': 'KG'},
                'ChargeableWeight': {'Value': str(package['chargeable_weight']), 'Unit': 'KG'},
                'NumberOfPieces': package['pieces'],
                'PaymentType': 'P',
                'ProductGroup': product_group,
                'ProductType': product_type,
                'Dimensions': {
                    'Length': str(package['length']),
                    'Width': str(package['width']),
                    'Height': str(package['height']),
                    'Unit': 'CM',
                },
            },
            'PreferredCurrencyCode': self.currency,
        }

    def _make_request(self, payload: Dict) -> Dict:
        """
        POST to the rate calculator

        Raises:
            ShippingRateError: On transport failure or when the API reports errors
        """
        try:
            response = requests.post(
                self.api_url,
                json=payload,
                headers={'Content-Type': 'application/json', 'Accept': 'application/json'},
                timeout=30,
            )
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout:
            logger.error('Aramex API timeout')
            raise ShippingRateError('Request timeout. Please try again.')

        except requests.exceptions.RequestException as e:
            logger.error(f'Aramex API error: {str(e)}')
            raise ShippingRateError(f'API Error: {str(e)}')

        except ValueError:
            raise ShippingRateError('Invalid response from Aramex')

        if not isinstance(data, dict):
            logger.error(f'Aramex returned a non-object body: {type(data).__name__}')
            raise ShippingRateError('Invalid response from Aramex')

        if data.get('HasErrors'):
            notifications = data.get('Notifications') or []
            message = '; '.join(n.get('Message', '') for n in notifications if n.get('Message'))
            logger.error(f'Aramex rate calculation failed: {notifications}')
            raise ShippingRateError(message or 'Aramex rate calculation failed')

        return data

    def _quote(self, price, package: Dict, destination_code: str) -> Dict:
        domestic = self.is_domestic(destination_code)
        return {
            'provider': 'aramex',
            'name': 'Aramex',
            'price': round_money(price),
            'currency': self.currency,
            'delivery_days': '2-3' if domestic else '4-6',
            'service_type': 'Domestic Express' if domestic else 'International Express',
            'description': (
                'Domestic express courier service' if domestic
                else 'International express courier service'
            ),
            'chargeable_weight': package['chargeable_weight'],
        }

    def calculate_rate(self, cart_items: List[Dict], destination: Dict) -> Tuple[bool, Dict]:
        """
        Quote a shipment for the given cart

        Args:
            cart_items: [{'weight' (kg), 'length', 'width', 'height' (cm)}, ...]
            destination: {'city', 'country', 'address', 'post_code'}

        Returns:
            Tuple of (success: bool, data: dict)

        Example response:
            {
                'provider': 'aramex',
                'price': Decimal('2.500'),
                'currency': 'BHD',
                'delivery_days': '2-3',
                'service_type': 'Domestic Express',
                'chargeable_weight': 1.2,
                ...
            }
        """
        if not cart_items:
            return False, {'error': 'No cart items provided'}
        if not destination.get('post_code'):
            return False, {'error': 'Destination postal code is required'}

        package = package_details(cart_items)
        destination_code = country_code(destination.get('country', ''))

        if self.use_mock:
            return self._mock_calculate_rate(package, destination_code)

        try:
            data = self._make_request(self._build_payload(package, destination, destination_code))
            total = data.get('TotalAmount')
            amount = total.get('Value') if isinstance(total, dict) else None
            if amount is None:
                return False, {'error': 'Aramex returned no amount'}

            quote = self._quote(amount, package, destination_code)
            logger.info(
                f'Aramex rate: {quote["price"]} {quote["currency"]} to {destination_code} '
                f'({package["chargeable_weight"]} kg chargeable)'
            )
            return True, quote

        except ShippingRateError as e:
            logger.error(f'Shipping rate error: {str(e)}')
            return False, {'error': str(e)}

        except InvalidAmount:
            logger.error('Aramex returned a non-numeric TotalAmount')
            return False, {'error': 'Invalid amount returned by Aramex'}

    # ==========================================
    # MOCK METHODS (for testing)
    # ==========================================

    def _mock_calculate_rate(self, package: Dict, destination_code: str) -> Tuple[bool, Dict]:
        """Flat base plus a per-kg rate on the chargeable weight"""
        if self.is_domestic(destination_code):
            base, per_kg = Decimal('1.500'), Decimal('0.500')
        else:
            base, per_kg = Decimal('5.000'), Decimal('2.000')

        price = base + per_kg * Decimal(str(package['chargeable_weight']))
        logger.info(f'[MOCK] Aramex rate: {round_money(price)} to {destination_code}')

        quote = self._quote(price, package, destination_code)
        quote['mock'] = True
        return True, quote


# Singleton instance
shipping_rate_service = AramexRateService()
