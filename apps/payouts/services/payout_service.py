"""
Payout & Earnings Ledger Service
Turns delivered-order value into vendor balance and settles payout requests

Wallet bucket moves:
- earning created       -> available += share, total_earned += share
- payout requested      -> available -> pending
- payout COMPLETED      -> pending -> total_withdrawn
- payout REJECTED/FAILED -> pending -> available

All of them run in transaction.atomic() with the VendorWallet row locked via
select_for_update(), so earnings and payouts for one vendor serialize on
that row.

Settings Used:
- ADMIN_USER_ID (owner of the platform commission wallet)
- LEDGER_CURRENCY
"""

import calendar
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from apps.payouts.models import (
    PLATFORM_COMMISSION_RATE, VENDOR_SHARE_RATE,
    PayoutRequest, VendorEarning, VendorWallet,
)
from apps.wallet.models import WalletTransaction
from apps.wallet.services import wallet_service
from core.exceptions import (
    InsufficientBalance, InvalidAmount, InvalidPayoutMethod, InvalidTransition,
    NotProcessable, PayoutRequestNotFound, PendingRequestExists, UserNotFound, WalletNotFound,
)
from core.utils.money import ZERO, positive_money, round_money, to_decimal

logger = logging.getLogger(__name__)

User = get_user_model()


def split_earning(order_amount) -> Tuple[Decimal, Decimal]:
    """
    (vendor_share, platform_commission) for an order amount.

    The commission is the remainder after rounding the 90% share, so the two
    always add back up to the order amount exactly. Rounding 10% on its own
    would disagree on half-up edges: 0.005 gives a 0.005 share, and
    round(0.0005) = 0.001 would then overshoot the amount by one fil.
    """
    order_amount = round_money(order_amount)
    vendor_share = round_money(order_amount * VENDOR_SHARE_RATE)
    return vendor_share, order_amount - vendor_share


class PayoutService:
    """
    Service class for vendor earnings, vendor wallets and payout requests
    """

    METHOD_DETAIL_FIELDS = (
        'bank_account_holder_name', 'bank_account_number', 'bank_name',
        'bank_iban', 'bank_swift_code', 'paypal_email', 'stripe_account_id',
    )

    def __init__(self, admin_user_id=None, wallet=None, currency: Optional[str] = None):
        self.admin_user_id = admin_user_id
        self.wallet = wallet or wallet_service
        self.currency = currency or getattr(settings, 'LEDGER_CURRENCY', 'BHD')

    # ==========================================
    # VENDOR WALLET
    # ==========================================

    def get_or_create_vendor_wallet(self, vendor_id) -> VendorWallet:
        wallet = VendorWallet.objects.filter(vendor_id=vendor_id).first()
        if wallet is not None:
            return wallet

        if not User.objects.filter(pk=vendor_id).exists():
            raise UserNotFound(f'Vendor {vendor_id} not found')

        wallet, created = VendorWallet.objects.get_or_create(
            vendor_id=vendor_id,
            defaults={'currency': self.currency}
        )
        if created:
            logger.info(f'Vendor wallet created for vendor {vendor_id}')
        return wallet

    def get_vendor_wallet(self, vendor_id) -> Optional[VendorWallet]:
        return VendorWallet.objects.select_related('vendor').filter(vendor_id=vendor_id).first()

    def get_all_vendor_wallets(self, limit: int = 50, offset: int = 0) -> List[VendorWallet]:
        qs = VendorWallet.objects.select_related('vendor').order_by('-total_earned', 'id')
        return list(qs[offset:offset + limit])

    def _lock_vendor_wallet(self, vendor_id, create: bool = False) -> VendorWallet:
        """Row-locked wallet; call inside atomic()"""
        if create:
            self.get_or_create_vendor_wallet(vendor_id)
        try:
            return VendorWallet.objects.select_for_update().get(vendor_id=vendor_id)
        except VendorWallet.DoesNotExist:
            raise WalletNotFound('Vendor wallet not found. Please contact support.')

    # ==========================================
    # EARNINGS
    # ==========================================

    def create_vendor_earning(self, vendor_id, order_id, order_number: str, order_amount) -> VendorEarning:
        """
        Record a vendor's 90% share of a delivered order and credit their wallet

        Idempotent per (vendor, order): a repeat call returns the existing
        earning and leaves the wallet untouched.

        Raises:
            InvalidAmount: If order_amount is negative
            UserNotFound: If the vendor does not exist
        """
        order_amount = round_money(order_amount)
        if order_amount < 0:
            raise InvalidAmount(f'Order amount cannot be negative (got {order_amount})')

        with transaction.atomic():
            # Lock first so concurrent calls for this vendor queue up behind the check
            wallet = self._lock_vendor_wallet(vendor_id, create=True)

            existing = VendorEarning.objects.filter(vendor_id=vendor_id, order_id=order_id).first()
            if existing is not None:
                logger.warning(f'Earning already exists for vendor {vendor_id} and order {order_number}')
                return existing

            vendor_share, platform_commission = split_earning(order_amount)

            earning = VendorEarning.objects.create(
                vendor_id=vendor_id,
                order_id=order_id,
                order_number=order_number,
                order_amount=order_amount,
                vendor_share=vendor_share,
                platform_commission=platform_commission,
                currency=wallet.currency,
                payout_status=VendorEarning.PENDING,
            )

            wallet.available_balance = round_money(wallet.available_balance + vendor_share)
            wallet.total_earned = round_money(wallet.total_earned + vendor_share)
            wallet.save(update_fields=['available_balance', 'total_earned', 'updated_at'])

        logger.info(
            f'Vendor earning created: vendor {vendor_id}, order {order_number}, '
            f'share {vendor_share} (90% of {order_amount}), commission {platform_commission}. '
            f'Available balance: {wallet.available_balance}'
        )
        return earning

    def create_admin_commission(self, order_id, order_number: str, order_grand_total) -> Optional[Decimal]:
        """
        Credit 10% of the whole order's grand total to the admin wallet

        Best-effort: every failure is logged and swallowed.

        Returns:
            The credited commission, or None when nothing was credited
        """
        try:
            commission = round_money(to_decimal(order_grand_total) * PLATFORM_COMMISSION_RATE)

            if not self.admin_user_id:
                logger.warning(
                    f'ADMIN_USER_ID not configured - commission {commission} for order '
                    f'{order_number} tracked in earnings but not credited'
                )
                return None

            if not User.objects.filter(pk=self.admin_user_id).exists():
                logger.warning(f'Admin user {self.admin_user_id} not found - commission for order {order_number} not credited')
                return None

            if commission <= 0:
                logger.warning(f'Zero commission for order {order_number} - nothing to credit')
                return None

            self.wallet.credit_wallet(
                self.admin_user_id,
                commission,
                payment_method=WalletTransaction.MASTERCARD_GATEWAY,
                description=f'Platform commission (10%) from order {order_number}',
                metadata={'order_id': order_id, 'order_number': order_number, 'source': 'platform_commission'},
            )
            logger.info(f'Admin commission {commission} credited for order {order_number}')
            return commission

        except Exception:
            logger.exception(f'Error creating admin commission for order {order_number}')
            return None

    def get_vendor_earnings(self, vendor_id, start_date=None, end_date=None):
        qs = VendorEarning.objects.filter(vendor_id=vendor_id).select_related('order')
        if start_date:
            qs = qs.filter(earned_date__gte=start_date)
        if end_date:
            qs = qs.filter(earned_date__lte=end_date)
        return qs.order_by('-earned_date', '-id')

    # ==========================================
    # PAYOUT REQUESTS
    # ==========================================

    def _clean_method_details(self, payout_method: str, details: Dict) -> Dict:
        if payout_method not in dict(PayoutRequest.PAYOUT_METHOD_CHOICES):
            raise InvalidPayoutMethod(f'Invalid payout method: {payout_method}')

        cleaned = {
            field: str(details.get(field) or '').strip()
            for field in self.METHOD_DETAIL_FIELDS
        }

        errors = PayoutRequest(payout_method=payout_method, **cleaned).method_detail_errors()
        if errors:
            missing = ', '.join(sorted(errors))
            raise InvalidPayoutMethod(f'Missing payout details for {payout_method}: {missing}')
        return cleaned

    def create_payout_request(
        self,
        vendor_id,
        requested_amount,
        payout_method: str,
        details: Optional[Dict] = None,
        notes: str = ''
    ) -> PayoutRequest:
        """
        Vendor asks to withdraw; the amount moves from available to pending

        Raises:
            InvalidAmount / InvalidPayoutMethod: Bad input
            WalletNotFound: Vendor has never earned anything
            InsufficientBalance: Amount exceeds the available balance
            PendingRequestExists: Vendor already has an outstanding request
        """
        amount = positive_money(requested_amount)
        method_details = self._clean_method_details(payout_method, details or {})

        with transaction.atomic():
            wallet = self._lock_vendor_wallet(vendor_id)

            if wallet.available_balance < amount:
                raise InsufficientBalance(
                    f'Insufficient balance for payout. Available: {wallet.available_balance} {wallet.currency}, '
                    f'Requested: {amount} {wallet.currency}'
                )

            if PayoutRequest.objects.filter(
                vendor_id=vendor_id,
                status__in=PayoutRequest.OUTSTANDING_STATUSES
            ).exists():
                raise PendingRequestExists()

            payout = PayoutRequest.objects.create(
                vendor_id=vendor_id,
                requested_amount=amount,
                currency=wallet.currency,
                payout_method=payout_method,
                status=PayoutRequest.PENDING,
                notes=notes or '',
                **method_details
            )

            wallet.available_balance = round_money(wallet.available_balance - amount)
            wallet.pending_balance = round_money(wallet.pending_balance + amount)
            wallet.save(update_fields=['available_balance', 'pending_balance', 'updated_at'])

        logger.info(
            f'Payout request #{payout.pk} created for vendor {vendor_id}: {amount} {payout.currency}. '
            f'Available: {wallet.available_balance}, Pending: {wallet.pending_balance}'
        )
        return payout

    def process_payout_request(
        self,
        request_id,
        admin_id,
        new_status: str,
        rejection_reason: Optional[str] = None,
        transaction_reference: Optional[str] = None,
        notes: Optional[str] = None
    ) -> PayoutRequest:
        """
        Admin decision on a PENDING or APPROVED request

        APPROVED only records the decision. COMPLETED settles the pending
        amount and marks the oldest pending earnings PAID (FIFO, whole
        earnings only). REJECTED/FAILED return the amount to available.

        Raises:
            InvalidTransition: new_status is not a valid admin target
            PayoutRequestNotFound: Unknown request
            NotProcessable: Request is not PENDING/APPROVED
        """
        if new_status not in PayoutRequest.TARGET_STATUSES:
            raise InvalidTransition(f'Cannot move a payout request to {new_status}')

        if not User.objects.filter(pk=admin_id).exists():
            raise UserNotFound(f'Admin {admin_id} not found')

        with transaction.atomic():
            payout = PayoutRequest.objects.select_for_update().filter(pk=request_id).first()
            if payout is None:
                raise PayoutRequestNotFound()

            if payout.status not in PayoutRequest.PROCESSABLE_STATUSES:
                raise NotProcessable(f'Payout request cannot be processed. Current status: {payout.status}')

            wallet = self._lock_vendor_wallet(payout.vendor_id)
            amount = payout.requested_amount
            now = timezone.now()

            if new_status in (PayoutRequest.COMPLETED, PayoutRequest.REJECTED, PayoutRequest.FAILED):
                if wallet.pending_balance < amount:
                    raise NotProcessable(
                        f'Vendor wallet pending balance {wallet.pending_balance} is lower than '
                        f'the payout amount {amount}'
                    )

            payout.status = new_status
            payout.processed_by_id = admin_id
            payout.processed_date = now
            payout.transaction_reference = transaction_reference or ''
            payout.rejection_reason = rejection_reason or ''
            payout.notes = notes or payout.notes

            if new_status == PayoutRequest.COMPLETED:
                payout.completed_date = now
                wallet.pending_balance = round_money(wallet.pending_balance - amount)
                wallet.total_withdrawn = round_money(wallet.total_withdrawn + amount)
                wallet.last_payout_date = now
                paid_count = self._mark_earnings_paid(payout)
                logger.info(
                    f'Payout #{payout.pk} completed: pending {wallet.pending_balance}, '
                    f'withdrawn {wallet.total_withdrawn}, {paid_count} earning(s) marked PAID'
                )

            elif new_status in (PayoutRequest.REJECTED, PayoutRequest.FAILED):
                wallet.available_balance = round_money(wallet.available_balance + amount)
                wallet.pending_balance = round_money(wallet.pending_balance - amount)
                logger.info(
                    f'Payout #{payout.pk} {new_status}: {amount} returned, available {wallet.available_balance}'
                )

            payout.save()
            wallet.save()

        return payout

    def _mark_earnings_paid(self, payout: PayoutRequest) -> int:
        """
        Oldest-first, an earning is paid only if its whole share still fits
        in what is left of the payout; smaller later earnings may still fit.
        """
        remaining = payout.requested_amount
        to_pay = []

        pending = (
            VendorEarning.objects.select_for_update()
            .filter(vendor_id=payout.vendor_id, payout_status=VendorEarning.PENDING)
            .order_by('earned_date', 'id')
        )
        for earning in pending:
            if remaining <= 0:
                break
            if earning.vendor_share <= remaining:
                to_pay.append(earning.pk)
                remaining -= earning.vendor_share

        if to_pay:
            VendorEarning.objects.filter(pk__in=to_pay).update(
                payout_status=VendorEarning.PAID,
                payout=payout,
            )
        return len(to_pay)

    def get_all_payout_requests(self, filters: Optional[Dict] = None):
        """
        Args:
            filters: Optional keys 'vendor_id', 'status', 'start_date',
                     'end_date', 'min_amount', 'max_amount'
        """
        filters = filters or {}
        qs = PayoutRequest.objects.select_related('vendor', 'processed_by')

        if filters.get('vendor_id'):
            qs = qs.filter(vendor_id=filters['vendor_id'])
        if filters.get('status'):
            qs = qs.filter(status=filters['status'])
        if filters.get('start_date'):
            qs = qs.filter(requested_date__gte=filters['start_date'])
        if filters.get('end_date'):
            qs = qs.filter(requested_date__lte=filters['end_date'])
        if filters.get('min_amount') is not None:
            qs = qs.filter(requested_amount__gte=round_money(filters['min_amount']))
        if filters.get('max_amount') is not None:
            qs = qs.filter(requested_amount__lte=round_money(filters['max_amount']))

        return qs.order_by('-requested_date', '-id')

    def get_vendor_payout_requests(self, vendor_id):
        return self.get_all_payout_requests({'vendor_id': vendor_id})

    def get_payout_request(self, request_id) -> Optional[PayoutRequest]:
        return PayoutRequest.objects.select_related('vendor', 'processed_by').filter(pk=request_id).first()

    # ==========================================
    # REPORTING
    # ==========================================

    def get_vendor_sales_stats(self, vendor_id, start_date=None, end_date=None) -> Dict:
        earnings = self.get_vendor_earnings(vendor_id, start_date, end_date)
        totals = earnings.aggregate(
            total_sales=Sum('order_amount'),
            total_orders=Count('id'),
            vendor_earnings=Sum('vendor_share'),
            platform_commission=Sum('platform_commission'),
            pending_earnings=Sum('vendor_share', filter=Q(payout_status=VendorEarning.PENDING)),
            paid_earnings=Sum('vendor_share', filter=Q(payout_status=VendorEarning.PAID)),
        )

        total_sales = round_money(totals['total_sales'])
        total_orders = totals['total_orders']

        return {
            'total_sales': total_sales,
            'total_orders': total_orders,
            'vendor_earnings': round_money(totals['vendor_earnings']),
            'platform_commission': round_money(totals['platform_commission']),
            'average_order_value': round_money(total_sales / total_orders) if total_orders else ZERO,
            'pending_earnings': round_money(totals['pending_earnings']),
            'paid_earnings': round_money(totals['paid_earnings']),
        }

    @staticmethod
    def _fold_by_month(earnings):
        """{(year, month): {'sales', 'orders', 'vendor', 'commission'}} in local time"""
        months = defaultdict(lambda: {'sales': ZERO, 'orders': 0, 'vendor': ZERO, 'commission': ZERO})
        for earning in earnings:
            earned = timezone.localtime(earning.earned_date)
            bucket = months[(earned.year, earned.month)]
            bucket['sales'] += earning.order_amount
            bucket['orders'] += 1
            bucket['vendor'] += earning.vendor_share
            bucket['commission'] += earning.platform_commission
        return months

    def get_vendor_monthly_sales(self, vendor_id, year: Optional[int] = None) -> List[Dict]:
        year = year or timezone.localtime().year
        earnings = VendorEarning.objects.filter(vendor_id=vendor_id, earned_date__year=year)
        months = self._fold_by_month(earnings)

        return [
            {
                'month': calendar.month_name[month],
                'year': y,
                'total_sales': round_money(data['sales']),
                'total_orders': data['orders'],
                'vendor_earnings': round_money(data['vendor']),
                'platform_commission': round_money(data['commission']),
            }
            for (y, month), data in sorted(months.items())
        ]

    def get_admin_commission_stats(self, start_date=None, end_date=None) -> Dict:
        earnings = VendorEarning.objects.all()
        if start_date:
            earnings = earnings.filter(earned_date__gte=start_date)
        if end_date:
            earnings = earnings.filter(earned_date__lte=end_date)

        total_commission = ZERO
        total_vendor_earnings = ZERO
        total_orders = 0
        for earning in earnings:
            total_commission += earning.platform_commission
            total_vendor_earnings += earning.vendor_share
            total_orders += 1

        months = self._fold_by_month(earnings)
        monthly_breakdown = [
            {
                'month': calendar.month_name[month],
                'year': y,
                'commission': round_money(data['commission']),
                'vendor_earnings': round_money(data['vendor']),
            }
            for (y, month), data in sorted(months.items(), reverse=True)[:12]
        ]

        return {
            'total_commission': round_money(total_commission),
            'total_vendor_earnings': round_money(total_vendor_earnings),
            'total_orders': total_orders,
            'average_commission_per_order': (
                round_money(total_commission / total_orders) if total_orders else ZERO
            ),
            'monthly_breakdown': monthly_breakdown,
        }

    # ==========================================
    # AUDIT
    # ==========================================

    def audit_vendor_wallet(self, wallet: VendorWallet) -> List[str]:
        """
        Compare the wallet buckets with earnings and payout requests.

        Returns a list of human-readable problems (empty when consistent).
        """
        problems = []

        for field in ('available_balance', 'pending_balance', 'total_earned', 'total_withdrawn'):
            if getattr(wallet, field) < 0:
                problems.append(f'{field} is negative ({getattr(wallet, field)})')

        if wallet.available_balance + wallet.pending_balance > wallet.total_earned:
            problems.append(
                f'available {wallet.available_balance} + pending {wallet.pending_balance} '
                f'exceeds total earned {wallet.total_earned}'
            )

        earned = round_money(
            VendorEarning.objects.filter(vendor_id=wallet.vendor_id).aggregate(s=Sum('vendor_share'))['s']
        )
        if earned != wallet.total_earned:
            problems.append(f'total_earned {wallet.total_earned} != sum of earnings {earned}')

        payouts = PayoutRequest.objects.filter(vendor_id=wallet.vendor_id)
        withdrawn = round_money(
            payouts.filter(status=PayoutRequest.COMPLETED).aggregate(s=Sum('requested_amount'))['s']
        )
        if withdrawn != wallet.total_withdrawn:
            problems.append(f'total_withdrawn {wallet.total_withdrawn} != completed payouts {withdrawn}')

        outstanding = round_money(
            payouts.filter(status__in=PayoutRequest.OUTSTANDING_STATUSES).aggregate(s=Sum('requested_amount'))['s']
        )
        if outstanding != wallet.pending_balance:
            problems.append(f'pending_balance {wallet.pending_balance} != outstanding requests {outstanding}')

        expected_available = round_money(wallet.total_earned - wallet.pending_balance - wallet.total_withdrawn)
        if expected_available != wallet.available_balance:
            problems.append(
                f'available_balance {wallet.available_balance} != earned - pending - withdrawn ({expected_available})'
            )

        return problems
