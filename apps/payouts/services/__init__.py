"""
Payout Services Package
"""

from django.conf import settings

from .payout_service import PayoutService, split_earning

payout_service = PayoutService(admin_user_id=getattr(settings, 'ADMIN_USER_ID', None))

__all__ = [
    'PayoutService',
    'payout_service',
    'split_earning',
]
