"""
Order Service
Checkout, status progression, cancellation and payment reconciliation

Writes to the order, its line items and its history logs happen inside one
transaction.atomic() block with the order row locked. Emails go out only
after that block has exited; their failures are logged and never raised.
"""

import logging
from collections import OrderedDict, defaultdict
from datetime import timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Prefetch, Q, Sum
from django.utils import timezone

from apps.catalog.models import Product, ProductVariation, effective_unit_price
from apps.orders.models import Order, OrderItem, PaymentHistory
from apps.payouts.services import payout_service
from apps.wallet.services import wallet_service
from core.exceptions import (
    InsufficientBalance, InvalidOrderData, InvalidTransition, NotCancellable,
    OrderNotFound, PaymentAlreadyCompleted, ProductNotFound, UserNotFound,
    ValidationFailed, VariationNotFound,
)
from core.utils.money import ZERO, round_money, to_decimal
from core.utils.references import generate_wallet_payment_reference

from .notifications import notification_service

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_DELIVERY_DAYS = 7

SHIPPING_FIELDS = ('full_name', 'mobile_number', 'country', 'address', 'city', 'state', 'zip_code')


def coerce_pk(model, value, error_class, label: str):
    """
    Normalise an incoming id (int or numeric string) to the model's pk type

    Raises:
        error_class: If the value cannot be a primary key of model
    """
    try:
        pk = model._meta.pk.to_python(value)
    except (ValidationError, TypeError, ValueError):
        pk = None
    if pk is None:
        raise error_class(f'{label} {value!r} not found')
    return pk


class OrderService:
    """
    Order orchestrator tying the catalog, customer wallet and payout ledger together
    """

    def __init__(self, wallet=None, payouts=None, notifications=None):
        self.wallet = wallet or wallet_service
        self.payouts = payouts or payout_service
        self.notifications = notifications or notification_service

    # ==========================================
    # HELPERS
    # ==========================================

    def _lock_order(self, order_id) -> Order:
        order_id = coerce_pk(Order, order_id, OrderNotFound, 'Order')
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise OrderNotFound(f'Order {order_id} not found')
        return order

    @staticmethod
    def _validate_checkout(lines: List[Dict], shipping: Dict, totals: Dict):
        if not lines:
            raise InvalidOrderData('Order must contain at least one product')

        for line in lines:
            if not line.get('product_id'):
                raise InvalidOrderData('Product ID is required')
            quantity = line.get('quantity')
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise InvalidOrderData(f'Quantity must be at least 1 (got {quantity!r})')

        missing = [field for field in SHIPPING_FIELDS if not str(shipping.get(field) or '').strip()]
        if missing:
            raise InvalidOrderData(f'Missing shipping fields: {", ".join(missing)}')

        if totals.get('total_price') is None:
            raise InvalidOrderData('Total price is required')

        for key in ('total_price', 'shipping_fee', 'tax', 'discount'):
            if round_money(totals.get(key)) < 0:
                raise InvalidOrderData(f'{key} cannot be negative')

    def _price_lines(self, lines: List[Dict]):
        """
        Resolve products/variations and freeze unit prices.

        Returns a list of (product, variation, quantity, unit_price).
        """
        line_product_ids = [coerce_pk(Product, line['product_id'], ProductNotFound, 'Product') for line in lines]
        product_ids = set(line_product_ids)
        products = Product.objects.select_related('vendor').in_bulk(product_ids)
        if len(products) != len(product_ids):
            missing = sorted(str(pid) for pid in product_ids if pid not in products)
            raise ProductNotFound(f'One or more products not found: {", ".join(missing)}')

        now = timezone.now()
        priced = []
        for line, product_id in zip(lines, line_product_ids):
            product = products[product_id]
            variation = None
            variation_id = line.get('variation_id')
            if variation_id:
                variation_id = coerce_pk(ProductVariation, variation_id, VariationNotFound, 'Variation')
                variation = ProductVariation.objects.filter(pk=variation_id, product=product).first()
                if variation is None:
                    raise VariationNotFound(
                        f'Variation {variation_id} not found for product {product.pk}'
                    )
            unit_price = round_money(effective_unit_price(product, variation, now))
            priced.append((product, variation, line['quantity'], unit_price))
        return priced

    @staticmethod
    def _items_by_vendor(order) -> Dict:
        """{vendor User: [OrderItem, ...]} preserving line order"""
        grouped = OrderedDict()
        for item in order.items.select_related('product__vendor'):
            grouped.setdefault(item.product.vendor, []).append(item)
        return grouped

    # ==========================================
    # CHECKOUT
    # ==========================================

    def create_order(
        self,
        user_id,
        lines: List[Dict],
        shipping: Dict,
        totals: Dict,
        payment_method: str = Order.GATEWAY,
        promo_code: str = '',
        shipping_method_id: str = '',
        order_notes: str = '',
        estimated_delivery_date=None,
        transaction_id: Optional[str] = None
    ) -> Order:
        """
        Create an order from cart lines with prices snapshotted from the catalog

        Args:
            lines: [{'product_id', 'quantity', 'variation_id' (optional)}, ...]
            shipping: full_name, mobile_number, country, address, city, state, zip_code
            totals: total_price, shipping_fee, tax, discount (caller-computed)
            payment_method: GATEWAY, CASH_ON_DELIVERY or WALLET

        Raises:
            InvalidOrderData, UserNotFound, ProductNotFound, VariationNotFound,
            InsufficientBalance (wallet checkout)
        """
        self._validate_checkout(lines, shipping, totals)

        if payment_method not in dict(Order.PAYMENT_METHOD_CHOICES):
            raise InvalidOrderData(f'Invalid payment method: {payment_method}')

        user_id = coerce_pk(User, user_id, UserNotFound, 'User')
        if not User.objects.filter(pk=user_id).exists():
            raise UserNotFound(f'User {user_id} not found')

        priced = self._price_lines(lines)

        # Caller-supplied subtotal is trusted as-is
        order = Order(
            user_id=user_id,
            shipping_full_name=shipping['full_name'].strip(),
            shipping_mobile_number=shipping['mobile_number'].strip(),
            shipping_country=shipping['country'].strip(),
            shipping_address=shipping['address'].strip(),
            shipping_city=shipping['city'].strip(),
            shipping_state=shipping['state'].strip(),
            shipping_zip_code=str(shipping['zip_code']).strip(),
            currency=getattr(settings, 'LEDGER_CURRENCY', 'BHD'),
            total_price=to_decimal(totals['total_price']),
            shipping_fee=to_decimal(totals.get('shipping_fee') or 0),
            tax=to_decimal(totals.get('tax') or 0),
            discount=to_decimal(totals.get('discount') or 0),
            promo_code=(promo_code or '').strip().upper(),
            shipping_method_id=shipping_method_id or '',
            order_notes=order_notes or '',
            estimated_delivery_date=(
                estimated_delivery_date or timezone.now() + timedelta(days=DEFAULT_DELIVERY_DAYS)
            ),
            payment_method_used=payment_method,
            transaction_id=transaction_id or '',
        )
        grand_total = order.compute_grand_total()
        if grand_total < 0:
            raise InvalidOrderData('Grand total cannot be negative')

        paid_by_wallet = payment_method == Order.WALLET
        if paid_by_wallet:
            if not self.wallet.has_sufficient_balance(user_id, grand_total):
                wallet = self.wallet.get_wallet(user_id)
                available = wallet.balance if wallet else ZERO
                raise InsufficientBalance(
                    f'Insufficient wallet balance. Available: {available} {order.currency}, '
                    f'Required: {grand_total} {order.currency}'
                )
            order.transaction_id = generate_wallet_payment_reference()
            order.status = Order.CONFIRMED
            order.payment_status = Order.PAYMENT_COMPLETED

        with transaction.atomic():
            order.save()

            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    product=product,
                    variation=variation,
                    product_name=product.product_name if variation is None else f'{product.product_name} ({variation.name})',
                    quantity=quantity,
                    price=unit_price,
                    total=round_money(unit_price * quantity),
                )
                for product, variation, quantity, unit_price in priced
            ])

            order.add_status_history(
                order.status,
                'Order created and paid via wallet' if paid_by_wallet else 'Order created - awaiting payment'
            )

            if paid_by_wallet:
                PaymentHistory.objects.create(
                    order=order,
                    payment_gateway=Order.WALLET_GATEWAY_LABEL,
                    gateway_transaction_id=order.transaction_id,
                    currency=order.currency,
                    payment_status=Order.PAYMENT_COMPLETED,
                    payment_method='Wallet',
                    gateway_response={
                        'success': True,
                        'message': 'Payment processed via wallet',
                        'timestamp': timezone.now().isoformat(),
                    },
                )
                # Raises InsufficientBalance if the balance moved since the check; rolls the order back
                self.wallet.debit_wallet(
                    user_id,
                    order.grand_total,
                    description=f'Payment for order {order.order_number}',
                    order_id=order.pk,
                )

        logger.info(
            f'Order {order.order_number} created for user {user_id}: '
            f'{len(priced)} line(s), grand total {order.grand_total} {order.currency}, '
            f'{order.payment_method_used}/{order.payment_status}'
        )

        self.notifications.notify_order_created(order, self._items_by_vendor(order))
        return order

    # ==========================================
    # STATUS
    # ==========================================

    def update_order_status(
        self,
        order_id,
        new_status: str,
        note: str = '',
        tracking_number: Optional[str] = None
    ) -> Order:
        """
        Move an order along the status table

        On the first transition to DELIVERED the per-vendor earnings and the
        admin commission are recorded; those are best-effort and never block
        the status change.

        Raises:
            OrderNotFound, InvalidTransition
        """
        with transaction.atomic():
            order = self._lock_order(order_id)
            previous_status = order.status

            if new_status not in dict(Order.STATUS_CHOICES) or not order.can_transition_to(new_status):
                raise InvalidTransition(f'Cannot transition from {previous_status} to {new_status}')

            order.status = new_status
            if tracking_number:
                order.tracking_number = tracking_number

            delivered_now = new_status == Order.DELIVERED and order.actual_delivery_date is None
            if delivered_now:
                order.actual_delivery_date = timezone.now()

            order.save()
            order.add_status_history(new_status, note)

            if delivered_now:
                self._record_delivery_earnings(order)

        logger.info(f'Order {order.order_number} status {previous_status} -> {new_status}')

        self.notifications.send_order_status_update(order, previous_status, new_status)
        return order

    def _record_delivery_earnings(self, order: Order):
        """
        One earning per vendor in the order plus the admin commission.
        Each call runs in its own savepoint so a failure rolls back only itself.
        """
        vendor_amounts = defaultdict(lambda: ZERO)
        for item in order.items.select_related('product'):
            vendor_amounts[item.product.vendor_id] += item.total

        if not vendor_amounts:
            logger.error(f'No vendors found for order {order.order_number}')
            return

        logger.info(f'Order {order.order_number} delivered: creating earnings for {len(vendor_amounts)} vendor(s)')

        for vendor_id, amount in vendor_amounts.items():
            try:
                self.payouts.create_vendor_earning(vendor_id, order.pk, order.order_number, amount)
            except Exception:
                logger.exception(f'Error creating earning for vendor {vendor_id} on order {order.order_number}')

        self.payouts.create_admin_commission(order.pk, order.order_number, order.grand_total)

    def cancel_order(self, order_id, reason: Optional[str] = None) -> Order:
        """
        Cancel an order that has not left for delivery, refunding wallet payments

        Raises:
            OrderNotFound, NotCancellable
        """
        with transaction.atomic():
            order = self._lock_order(order_id)

            if order.status == Order.DELIVERED:
                raise NotCancellable('Cannot cancel a delivered order')
            if order.status == Order.CANCELLED:
                raise NotCancellable('Order is already cancelled')
            if order.status == Order.OUT_FOR_DELIVERY:
                raise NotCancellable('Cannot cancel order that is out for delivery')

            if order.paid_via_wallet:
                self.wallet.refund_to_wallet(
                    order.user_id,
                    order.grand_total,
                    order.pk,
                    f'Refund for cancelled order {order.order_number}'
                )
                logger.info(f'Refunded {order.grand_total} {order.currency} to wallet for cancelled order {order.order_number}')

            order.status = Order.CANCELLED
            order.payment_status = Order.PAYMENT_REFUNDED
            order.save()
            order.add_status_history(Order.CANCELLED, reason or 'Order cancelled by user')

        logger.info(f'Order {order.order_number} cancelled')

        self.notifications.send_order_cancellation(order, reason)
        return order

    # ==========================================
    # PAYMENT
    # ==========================================

    def update_payment_status(self, order_id, payment_status: str) -> Order:
        """Set payment status only; no history entry, no status coupling"""
        if payment_status not in dict(Order.PAYMENT_STATUS_CHOICES):
            raise ValidationFailed(f'Invalid payment status: {payment_status}')

        with transaction.atomic():
            order = self._lock_order(order_id)
            order.payment_status = payment_status
            order.save(update_fields=['payment_status', 'updated_at'])
        return order

    def _record_payment(self, order: Order, payment_status: str, entry: Dict) -> bool:
        """
        Append a payment history row to a locked order and set its payment status.

        Returns True when the payment confirmed a PENDING order.
        """
        order.payment_status = payment_status

        PaymentHistory.objects.create(
            order=order,
            payment_gateway=entry['payment_gateway'],
            gateway_transaction_id=entry['gateway_transaction_id'],
            session_id=entry.get('session_id') or '',
            result_indicator=entry.get('result_indicator') or '',
            currency=(entry.get('currency') or order.currency).upper(),
            payment_status=payment_status,
            payment_method=entry.get('payment_method') or '',
            gateway_response=entry.get('gateway_response') or {},
        )

        confirmed = False
        if payment_status == Order.PAYMENT_COMPLETED and order.status == Order.PENDING:
            order.status = Order.CONFIRMED
            order.add_status_history(Order.CONFIRMED, 'Payment completed - Order confirmed')
            confirmed = True

        order.save()
        logger.info(f'Order {order.order_number} payment {payment_status} via {entry["payment_gateway"]}')
        return confirmed

    def update_payment_with_history(self, order_id, payment_status: str, entry: Dict) -> Order:
        """
        Record a payment event; a COMPLETED payment confirms a PENDING order

        Args:
            entry: payment_gateway, gateway_transaction_id, and optionally
                   currency, payment_method, session_id, result_indicator,
                   gateway_response

        Raises:
            OrderNotFound, ValidationFailed
        """
        if payment_status not in dict(Order.PAYMENT_STATUS_CHOICES):
            raise ValidationFailed(f'Invalid payment status: {payment_status}')
        if not entry.get('payment_gateway') or not entry.get('gateway_transaction_id'):
            raise ValidationFailed('Payment gateway and gateway transaction id are required')

        with transaction.atomic():
            order = self._lock_order(order_id)
            confirmed = self._record_payment(order, payment_status, entry)

        if confirmed:
            self.notifications.send_order_status_update(order, Order.PENDING, Order.CONFIRMED)
        return order

    def complete_order_payment(
        self,
        order_id,
        transaction_id: str,
        gateway: str = 'Mastercard Gateway',
        currency: Optional[str] = None,
        gateway_response: Optional[Dict] = None,
        session_id: str = '',
        result_indicator: str = ''
    ) -> Order:
        """
        Gateway callback: mark an unpaid order as paid

        Raises:
            OrderNotFound, PaymentAlreadyCompleted, ValidationFailed
        """
        if not transaction_id:
            raise ValidationFailed('Transaction id is required')

        with transaction.atomic():
            order = self._lock_order(order_id)
            if order.is_paid:
                raise PaymentAlreadyCompleted(f'Order {order.order_number} is already paid')

            order.transaction_id = transaction_id
            confirmed = self._record_payment(order, Order.PAYMENT_COMPLETED, {
                'payment_gateway': gateway,
                'gateway_transaction_id': transaction_id,
                'currency': currency,
                'payment_method': 'Card',
                'session_id': session_id,
                'result_indicator': result_indicator,
                'gateway_response': gateway_response or {},
            })

        if confirmed:
            self.notifications.send_order_status_update(order, Order.PENDING, Order.CONFIRMED)
        return order

    # ==========================================
    # QUERIES
    # ==========================================

    @staticmethod
    def _base_queryset():
        return Order.objects.select_related('user').prefetch_related(
            'items__product', 'status_history', 'payment_history'
        )

    def get_order(self, order_id) -> Optional[Order]:
        try:
            order_id = coerce_pk(Order, order_id, OrderNotFound, 'Order')
        except OrderNotFound:
            return None
        return self._base_queryset().filter(pk=order_id).first()

    def get_order_by_number(self, order_number: str) -> Optional[Order]:
        return self._base_queryset().filter(order_number=(order_number or '').upper()).first()

    def list_orders(self, filters: Optional[Dict] = None):
        """
        Args:
            filters: Optional keys 'user_id', 'status', 'payment_status',
                     'order_number', 'start_date', 'end_date'
        """
        filters = filters or {}
        qs = self._base_queryset()

        if filters.get('user_id'):
            qs = qs.filter(user_id=filters['user_id'])
        if filters.get('status'):
            qs = qs.filter(status=filters['status'])
        if filters.get('payment_status'):
            qs = qs.filter(payment_status=filters['payment_status'])
        if filters.get('order_number'):
            qs = qs.filter(order_number=filters['order_number'].upper())
        if filters.get('start_date'):
            qs = qs.filter(created_at__gte=filters['start_date'])
        if filters.get('end_date'):
            qs = qs.filter(created_at__lte=filters['end_date'])

        return qs.order_by('-created_at', '-id')

    def get_user_orders(self, user_id, status: Optional[str] = None):
        return self.list_orders({'user_id': user_id, 'status': status})

    def get_recent_orders(self, limit: int = 10) -> List[Order]:
        return list(self._base_queryset().order_by('-created_at', '-id')[:limit])

    def get_vendor_orders(self, vendor_id, filters: Optional[Dict] = None) -> List[Order]:
        """
        Orders containing the vendor's products.

        Each order carries `vendor_items` (only this vendor's lines) and
        `vendor_total` (their sum).
        """
        filters = filters or {}
        qs = Order.objects.filter(items__product__vendor_id=vendor_id)
        if filters.get('status'):
            qs = qs.filter(status=filters['status'])
        if filters.get('payment_status'):
            qs = qs.filter(payment_status=filters['payment_status'])

        qs = (
            qs.annotate(vendor_total=Sum('items__total'))
            .select_related('user')
            .prefetch_related(Prefetch(
                'items',
                queryset=OrderItem.objects.filter(product__vendor_id=vendor_id).select_related('product'),
                to_attr='vendor_items',
            ))
            .order_by('-created_at', '-id')
        )
        return list(qs)

    @staticmethod
    def _status_counts(qs) -> Dict:
        counts = qs.aggregate(
            total_orders=Count('id', distinct=True),
            pending=Count('id', filter=Q(status=Order.PENDING), distinct=True),
            confirmed=Count('id', filter=Q(status=Order.CONFIRMED), distinct=True),
            preparing_for_shipment=Count('id', filter=Q(status=Order.PREPARING_FOR_SHIPMENT), distinct=True),
            out_for_delivery=Count('id', filter=Q(status=Order.OUT_FOR_DELIVERY), distinct=True),
            delivered=Count('id', filter=Q(status=Order.DELIVERED), distinct=True),
            cancelled=Count('id', filter=Q(status=Order.CANCELLED), distinct=True),
        )
        return counts

    def get_order_stats(self, start_date=None, end_date=None) -> Dict:
        qs = Order.objects.all()
        if start_date:
            qs = qs.filter(created_at__gte=start_date)
        if end_date:
            qs = qs.filter(created_at__lte=end_date)

        stats = self._status_counts(qs)
        revenue = qs.exclude(status=Order.CANCELLED).aggregate(total=Sum('grand_total'), count=Count('id'))
        total_revenue = round_money(revenue['total'])

        stats['total_revenue'] = total_revenue
        stats['average_order_value'] = (
            round_money(total_revenue / revenue['count']) if revenue['count'] else ZERO
        )
        return stats

    def get_user_order_stats(self, user_id) -> Dict:
        qs = Order.objects.filter(user_id=user_id)
        totals = qs.aggregate(
            total_orders=Count('id'),
            pending_orders=Count('id', filter=Q(status__in=Order.OPEN_STATUSES)),
            completed_orders=Count('id', filter=Q(status=Order.DELIVERED)),
            total_spent=Sum('grand_total', filter=~Q(status=Order.CANCELLED)),
        )
        return {
            'total_orders': totals['total_orders'],
            'total_spent': round_money(totals['total_spent']),
            'pending_orders': totals['pending_orders'],
            'completed_orders': totals['completed_orders'],
        }

    def get_vendor_order_stats(self, vendor_id) -> Dict:
        """
        Status counts over orders containing the vendor's products; revenue
        counts only the vendor's own lines in non-cancelled orders.
        """
        qs = Order.objects.filter(items__product__vendor_id=vendor_id)
        stats = self._status_counts(qs)

        revenue = OrderItem.objects.filter(
            product__vendor_id=vendor_id
        ).exclude(
            order__status=Order.CANCELLED
        ).aggregate(total=Sum('total'))['total']
        total_revenue = round_money(revenue)

        stats['total_revenue'] = total_revenue
        stats['average_order_value'] = (
            round_money(total_revenue / stats['total_orders']) if stats['total_orders'] else ZERO
        )
        return stats

    # ==========================================
    # ADMIN PURGE
    # ==========================================

    def delete_order(self, order_id) -> Optional[Order]:
        """
        Hard delete. Earnings and wallet journal lines keep their amounts and
        lose only the link to the order.
        """
        try:
            order_id = coerce_pk(Order, order_id, OrderNotFound, 'Order')
        except OrderNotFound:
            return None

        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                return None
            order_number = order.order_number
            order.delete()

        logger.warning(f'Order {order_number} deleted')
        return order


# Singleton instance
order_service = OrderService()
