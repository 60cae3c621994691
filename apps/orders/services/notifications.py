"""
Notification Service
Plain-text order and payout emails for customers, vendors and the back office

Every public method returns True/False and never raises: callers send these
after their database work has committed and must not fail because of email.

Settings Used:
- USE_MOCK_NOTIFICATIONS (log instead of sending, default True)
- DEFAULT_FROM_EMAIL
- ADMIN_EMAIL (recipient of new-order alerts)
- SITE_URL
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from django.conf import settings

from core.utils.email_service import send_plain_email

logger = logging.getLogger(__name__)


class EmailService:
    """
    Thin wrapper around Django's mail framework with a mock mode
    """

    def __init__(self, use_mock: Optional[bool] = None):
        if use_mock is None:
            use_mock = getattr(settings, 'USE_MOCK_NOTIFICATIONS', True)
        self.use_mock = use_mock
        self.from_email = getattr(settings, 'DEFAULT_FROM_EMAIL', 'noreply@souqmarketplace.com')

    def send_email(self, to_email: str, subject: str, message: str) -> bool:
        """
        Send a plain-text email

        Returns:
            True if sent successfully, False otherwise
        """
        if not to_email:
            logger.warning(f'Email skipped, no recipient: {subject}')
            return False

        if self.use_mock:
            return self._mock_send_email(to_email, subject, message)

        try:
            send_plain_email(
                subject=subject,
                message=message,
                recipient_list=[to_email],
                from_email=self.from_email,
            )
            logger.info(f'Email sent to {to_email}: {subject}')
            return True

        except Exception as e:
            logger.error(f'Email send error to {to_email}: {str(e)}')
            return False

    def _mock_send_email(self, to_email: str, subject: str, message: str) -> bool:
        logger.info(f'[MOCK EMAIL] To: {to_email} | Subject: {subject}')
        logger.debug(f'[MOCK EMAIL] Message: {message[:100]}...')
        return True


class NotificationService:
    """
    Order lifecycle and payout notifications
    """

    STATUS_MESSAGES = {
        'CONFIRMED': 'Your order has been confirmed and is being prepared.',
        'PREPARING_FOR_SHIPMENT': 'Your order is being packed for shipment.',
        'OUT_FOR_DELIVERY': 'Your order is out for delivery.',
        'DELIVERED': 'Your order has been delivered. Enjoy your purchase!',
        'CANCELLED': 'Your order has been cancelled.',
    }

    def __init__(self, email: Optional[EmailService] = None):
        self.email = email or EmailService()

    @property
    def site_url(self):
        return getattr(settings, 'SITE_URL', '')

    @staticmethod
    def _customer_name(order):
        return order.user.name or order.shipping_full_name

    @staticmethod
    def _format_lines(items) -> str:
        return '\n'.join(
            f'- {item.product_name} x{item.quantity} @ {item.price} = {item.total}'
            for item in items
        )

    # ==========================================
    # ORDER NOTIFICATIONS
    # ==========================================

    def send_vendor_order_notification(self, vendor, order, items: List) -> bool:
        """
        Tell a vendor which of their products were ordered

        Args:
            vendor: User with the vendor role
            order: Order instance
            items: The vendor's OrderItem rows in this order
        """
        try:
            vendor_total = sum((item.total for item in items), Decimal('0.000'))
            to_email = vendor.email
            message = f"""
Hello {vendor.display_name},

You have a new order #{order.order_number}.

{self._format_lines(items)}

Your subtotal: {vendor_total} {order.currency}
Ship to: {order.shipping_full_name}, {order.shipping_address_display}

Manage the order: {self.site_url}/admin/orders/order/{order.pk}/change/

Best regards,
SouqMarketplace Team
            """
        except Exception:
            logger.exception(f'Error building vendor notification for order {order.pk}')
            return False

        return self.email.send_email(
            to_email=to_email,
            subject=f'New Order Received - #{order.order_number}',
            message=message,
        )

    def send_customer_order_confirmation(self, order) -> bool:
        try:
            eta = f'{order.estimated_delivery_date:%d %b %Y}' if order.estimated_delivery_date else 'To be confirmed'
            to_email = order.user.email
            message = f"""
Hello {self._customer_name(order)},

Thank you for your order #{order.order_number}.

{self._format_lines(order.items.all())}

Subtotal: {order.total_price} {order.currency}
Shipping: {order.shipping_fee} {order.currency}
Tax: {order.tax} {order.currency}
Discount: {order.discount} {order.currency}
Grand total: {order.grand_total} {order.currency}

Payment status: {order.get_payment_status_display()}
Estimated delivery: {eta}

Best regards,
SouqMarketplace Team
            """
        except Exception:
            logger.exception(f'Error building order confirmation for order {order.pk}')
            return False

        return self.email.send_email(
            to_email=to_email,
            subject=f'Order Confirmation - #{order.order_number}',
            message=message,
        )

    def send_admin_order_notification(self, order) -> bool:
        admin_email = getattr(settings, 'ADMIN_EMAIL', '')
        if not admin_email:
            logger.warning('ADMIN_EMAIL not configured - skipping admin order notification')
            return False

        try:
            message = f"""
New order placed:

Order: #{order.order_number}
Customer: {self._customer_name(order)} ({order.user.email})
Items: {order.items.count()}
Grand total: {order.grand_total} {order.currency}
Payment: {order.get_payment_method_used_display()} / {order.get_payment_status_display()}

Review in admin: {self.site_url}/admin/orders/order/{order.pk}/change/

SouqMarketplace System
            """
        except Exception:
            logger.exception(f'Error building admin notification for order {order.pk}')
            return False

        return self.email.send_email(
            to_email=admin_email,
            subject=f'New Order Placed - #{order.order_number}',
            message=message,
        )

    def send_order_status_update(self, order, previous_status: str, new_status: str) -> bool:
        try:
            status_message = self.STATUS_MESSAGES.get(new_status, f'Your order status: {order.get_status_display()}')
            tracking = f'\nTracking number: {order.tracking_number}' if order.tracking_number else ''
            to_email = order.user.email
            message = f"""
Hello {self._customer_name(order)},

{status_message}

Order: #{order.order_number}
Status: {previous_status} -> {new_status}{tracking}
Total: {order.grand_total} {order.currency}

Thank you for shopping on SouqMarketplace!

Best regards,
SouqMarketplace Team
            """
        except Exception:
            logger.exception(f'Error building status update for order {order.pk}')
            return False

        return self.email.send_email(
            to_email=to_email,
            subject=f'Order Update - #{order.order_number}',
            message=message,
        )

    def send_order_cancellation(self, order, reason: Optional[str] = None) -> bool:
        try:
            refund_line = ''
            if order.payment_method_used == order.WALLET:
                refund_line = f'\n{order.grand_total} {order.currency} has been refunded to your wallet.'
            to_email = order.user.email
            message = f"""
Hello {self._customer_name(order)},

Your order #{order.order_number} has been cancelled.
Reason: {reason or 'Order cancelled by user'}{refund_line}

Best regards,
SouqMarketplace Team
            """
        except Exception:
            logger.exception(f'Error building cancellation email for order {order.pk}')
            return False

        return self.email.send_email(
            to_email=to_email,
            subject=f'Order Cancelled - #{order.order_number}',
            message=message,
        )

    def notify_order_created(self, order, vendor_items: Dict) -> Dict[str, int]:
        """
        Fan out the new-order emails

        Args:
            vendor_items: {vendor User: [OrderItem, ...]}

        Returns:
            Dict with 'sent' and 'failed' counts
        """
        results = []
        for vendor, items in vendor_items.items():
            results.append(self.send_vendor_order_notification(vendor, order, items))
        results.append(self.send_customer_order_confirmation(order))
        results.append(self.send_admin_order_notification(order))

        sent = sum(1 for r in results if r)
        logger.info(f'Order {order.order_number} notifications: {sent} sent, {len(results) - sent} failed')
        return {'sent': sent, 'failed': len(results) - sent}

    # ==========================================
    # PAYOUT NOTIFICATIONS
    # ==========================================

    def send_payout_processed(self, payout) -> bool:
        """
        Tell the vendor their payout request was completed, rejected or failed
        """
        try:
            vendor = payout.vendor

            if payout.status == payout.COMPLETED:
                subject = f'Payout Completed - {payout.requested_amount} {payout.currency}'
                body = (
                    f'Your payout of {payout.requested_amount} {payout.currency} has been sent '
                    f'via {payout.get_payout_method_display()}.'
                )
                if payout.transaction_reference:
                    body += f'\nReference: {payout.transaction_reference}'
            else:
                subject = f'Payout {payout.get_status_display()} - {payout.requested_amount} {payout.currency}'
                body = (
                    f'Your payout request of {payout.requested_amount} {payout.currency} was '
                    f'{payout.get_status_display().lower()}. The amount is back in your available balance.'
                )
                if payout.rejection_reason:
                    body += f'\nReason: {payout.rejection_reason}'

            to_email = vendor.email
            message = f"""
Hello {vendor.display_name},

{body}

Best regards,
SouqMarketplace Team
            """
        except Exception:
            logger.exception(f'Error building payout email for request #{payout.pk}')
            return False

        return self.email.send_email(to_email=to_email, subject=subject, message=message)


# Singleton instance
notification_service = NotificationService()
