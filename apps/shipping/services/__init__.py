"""
Shipping Services Package
"""

from .aramex import AramexRateService, ShippingRateError, shipping_rate_service

__all__ = [
    'AramexRateService',
    'ShippingRateError',
    'shipping_rate_service',
]
