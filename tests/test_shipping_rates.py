"""Tests for the Aramex rate client."""

from decimal import Decimal

import pytest
import requests

from apps.shipping.services import AramexRateService
from apps.shipping.services.aramex import country_code, package_details, parse_address

CART = [
    {'weight': 0.4, 'length': 30, 'width': 20, 'height': 5},
    {'weight': 0.6, 'length': 25, 'width': 25, 'height': 10},
]

DESTINATION = {
    'city': 'Riyadh',
    'country': 'Saudi Arabia',
    'address': 'King Fahd Road, Olaya, Building 7',
    'post_code': '12211',
}


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f'{self.status_code} Server Error')

    def json(self):
        return self.payload


@pytest.fixture
def live_service(settings):
    settings.ARAMEX_USERNAME = 'api@souq.test'
    settings.ARAMEX_PASSWORD = 'secret'
    settings.ARAMEX_ACCOUNT_NUMBER = '1000'
    settings.ARAMEX_ACCOUNT_PIN = '2000'
    return AramexRateService(use_mock=False)


class TestPackageMath:
    """Stacked package and chargeable weight."""

    def test_volumetric_weight_wins_for_bulky_cart(self):
        package = package_details(CART)

        # 30 x 25 x 15 / 5000 = 2.25 kg > 1.0 kg actual
        assert package['actual_weight'] == 1.0
        assert package['chargeable_weight'] == 2.25
        assert (package['length'], package['width'], package['height']) == (30, 25, 15)
        assert package['pieces'] == 2

    def test_actual_weight_wins_for_dense_cart(self):
        package = package_details([{'weight': 5, 'length': 10, 'width': 10, 'height': 10}])

        assert package['chargeable_weight'] == 5

    def test_country_code(self):
        assert country_code('Bahrain') == 'BH'
        assert country_code('united arab emirates') == 'AE'
        assert country_code('kw') == 'KW'
        assert country_code('Atlantis') == 'BH'

    def test_parse_address_pads_missing_lines(self):
        assert parse_address('Flat 3, Building 12') == ('Flat 3', 'Building 12', 'N/A')
        assert parse_address('') == ('N/A', 'N/A', 'N/A')


class TestCalculateRate:
    """calculate_rate in mock and live mode."""

    def test_validation(self):
        service = AramexRateService(use_mock=True)

        assert service.calculate_rate([], DESTINATION) == (False, {'error': 'No cart items provided'})
        success, data = service.calculate_rate(CART, dict(DESTINATION, post_code=''))
        assert success is False
        assert data['error'] == 'Destination postal code is required'

    def test_mock_domestic_quote(self):
        service = AramexRateService(use_mock=True)

        success, quote = service.calculate_rate(CART, dict(DESTINATION, country='Bahrain'))

        assert success is True
        assert quote['mock'] is True
        assert quote['service_type'] == 'Domestic Express'
        assert quote['delivery_days'] == '2-3'
        # 1.500 + 0.500 x 2.25
        assert quote['price'] == Decimal('2.625')

    def test_missing_credentials_force_mock(self, settings):
        settings.ARAMEX_USERNAME = ''

        assert AramexRateService(use_mock=False).use_mock is True

    def test_live_quote(self, live_service, monkeypatch):
        captured = {}

        def fake_post(url, json=None, headers=None, timeout=None):
            captured['url'] = url
            captured['payload'] = json
            return FakeResponse({'HasErrors': False, 'TotalAmount': {'Value': 7.8349, 'CurrencyCode': 'BHD'}})

        monkeypatch.setattr(requests, 'post', fake_post)

        success, quote = live_service.calculate_rate(CART, DESTINATION)

        assert success is True
        assert quote['price'] == Decimal('7.835')
        assert quote['service_type'] == 'International Express'
        assert quote['chargeable_weight'] == 2.25

        details = captured['payload']['ShipmentDetails']
        assert details['ProductGroup'] == 'EXP'
        assert details['ProductType'] == 'PDX'
        assert details['ChargeableWeight'] == {'Value': '2.25', 'Unit': 'KG'}
        assert captured['payload']['DestinationAddress']['CountryCode'] == 'SA'
        assert captured['payload']['DestinationAddress']['Line2'] == 'Olaya'
        assert captured['payload']['ClientInfo']['AccountNumber'] == '1000'

    def test_api_errors_become_failed_result(self, live_service, monkeypatch):
        monkeypatch.setattr(requests, 'post', lambda *a, **kw: FakeResponse({
            'HasErrors': True,
            'Notifications': [{'Code': 'ERR01', 'Message': 'Invalid destination city'}],
        }))

        assert live_service.calculate_rate(CART, DESTINATION) == (False, {'error': 'Invalid destination city'})

    def test_timeout_becomes_failed_result(self, live_service, monkeypatch):
        def timeout(*args, **kwargs):
            raise requests.exceptions.Timeout()

        monkeypatch.setattr(requests, 'post', timeout)

        success, data = live_service.calculate_rate(CART, DESTINATION)

        assert success is False
        assert 'timeout' in data['error'].lower()

    def test_http_error_becomes_failed_result(self, live_service, monkeypatch):
        monkeypatch.setattr(requests, 'post', lambda *a, **kw: FakeResponse({}, status_code=503))

        success, data = live_service.calculate_rate(CART, DESTINATION)

        assert success is False
        assert '503' in data['error']

    @pytest.mark.parametrize('payload', [
        {'HasErrors': False, 'TotalAmount': {'Value': 'n/a', 'CurrencyCode': 'BHD'}},
        {'HasErrors': False, 'TotalAmount': {'Value': 'NaN', 'CurrencyCode': 'BHD'}},
    ])
    def test_unusable_amount_becomes_failed_result(self, live_service, monkeypatch, payload):
        monkeypatch.setattr(requests, 'post', lambda *a, **kw: FakeResponse(payload))

        assert live_service.calculate_rate(CART, DESTINATION) == (False, {'error': 'Invalid amount returned by Aramex'})

    @pytest.mark.parametrize('payload', [['unexpected'], 'OK', None])
    def test_non_object_body_becomes_failed_result(self, live_service, monkeypatch, payload):
        monkeypatch.setattr(requests, 'post', lambda *a, **kw: FakeResponse(payload))

        assert live_service.calculate_rate(CART, DESTINATION) == (False, {'error': 'Invalid response from Aramex'})

    def test_missing_total_amount(self, live_service, monkeypatch):
        monkeypatch.setattr(requests, 'post', lambda *a, **kw: FakeResponse({'HasErrors': False, 'TotalAmount': 7}))

        assert live_service.calculate_rate(CART, DESTINATION) == (False, {'error': 'Aramex returned no amount'})
