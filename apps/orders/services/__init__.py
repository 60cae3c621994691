"""
Order Services Package
"""

from .notifications import EmailService, NotificationService, notification_service
from .order_service import OrderService, order_service

__all__ = [
    'EmailService',
    'NotificationService',
    'OrderService',
    'notification_service',
    'order_service',
]
