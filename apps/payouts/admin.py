"""
Payouts Admin
Earnings and vendor wallets are read-only; payout decisions go through
PayoutService so the wallet buckets move with them.
"""

from django.contrib import admin, messages
from django.utils.html import format_html

from core.exceptions import MarketplaceError

from .models import PayoutRequest, VendorEarning, VendorWallet
from .services import payout_service


@admin.register(VendorEarning)
class VendorEarningAdmin(admin.ModelAdmin):
    list_display = [
        'order_number', 'vendor', 'order_amount', 'vendor_share',
        'platform_commission', 'payout_status', 'earned_date'
    ]
    list_filter = ['payout_status', 'earned_date']
    search_fields = ['order_number', 'vendor__email', 'vendor__business_name']
    readonly_fields = [
        'vendor', 'order', 'order_number', 'order_amount', 'vendor_share',
        'platform_commission', 'currency', 'earned_date', 'payout_status', 'payout', 'created_at'
    ]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(VendorWallet)
class VendorWalletAdmin(admin.ModelAdmin):
    list_display = [
        'vendor_name', 'available_balance', 'pending_balance',
        'total_earned', 'total_withdrawn', 'last_payout_date'
    ]
    search_fields = ['vendor__email', 'vendor__business_name']
    readonly_fields = [
        'vendor', 'available_balance', 'pending_balance', 'total_earned',
        'total_withdrawn', 'currency', 'last_payout_date', 'created_at', 'updated_at'
    ]

    def vendor_name(self, obj):
        return obj.vendor.display_name
    vendor_name.short_description = 'Vendor'

    def has_add_permission(self, request):
        return False


@admin.register(PayoutRequest)
class PayoutRequestAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'vendor', 'requested_amount', 'payout_method',
        'status_badge', 'requested_date', 'processed_by'
    ]
    list_filter = ['status', 'payout_method', 'requested_date']
    search_fields = ['vendor__email', 'vendor__business_name', 'transaction_reference']
    readonly_fields = [
        'vendor', 'requested_amount', 'currency', 'payout_method', 'status',
        'requested_date', 'processed_date', 'completed_date', 'processed_by',
        'created_at', 'updated_at'
    ]

    fieldsets = (
        ('Request', {
            'fields': ('vendor', 'requested_amount', 'currency', 'payout_method', 'status', 'notes')
        }),
        ('Bank Transfer', {
            'fields': (
                'bank_account_holder_name', 'bank_account_number', 'bank_name',
                'bank_iban', 'bank_swift_code'
            )
        }),
        ('PayPal / Stripe', {
            'fields': ('paypal_email', 'stripe_account_id')
        }),
        ('Admin Response', {
            'fields': (
                'transaction_reference', 'rejection_reason', 'processed_by',
                'processed_date', 'completed_date'
            )
        }),
        ('Timestamps', {
            'fields': ('requested_date', 'created_at', 'updated_at')
        }),
    )

    actions = ['approve_requests', 'complete_requests', 'reject_requests']

    def status_badge(self, obj):
        colors = {
            'PENDING': 'orange',
            'APPROVED': 'blue',
            'PROCESSING': 'blue',
            'COMPLETED': 'green',
            'REJECTED': 'red',
            'FAILED': 'gray',
        }
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            colors.get(obj.status, 'gray'), obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def has_add_permission(self, request):
        return False

    def _process(self, request, queryset, new_status, **extra):
        done = 0
        for payout in queryset:
            try:
                payout_service.process_payout_request(payout.pk, request.user.pk, new_status, **extra)
                done += 1
            except MarketplaceError as e:
                self.message_user(request, f'Payout #{payout.pk}: {e.message}', messages.ERROR)
        return done

    # Admin Actions
    def approve_requests(self, request, queryset):
        """Approve selected payout requests"""
        count = self._process(request, queryset, PayoutRequest.APPROVED)
        self.message_user(request, f'✓ Approved {count} payout request(s)', messages.SUCCESS)
    approve_requests.short_description = 'Approve selected payout requests'

    def complete_requests(self, request, queryset):
        """Mark selected payout requests as paid out"""
        count = self._process(request, queryset, PayoutRequest.COMPLETED)
        self.message_user(request, f'✓ Completed {count} payout request(s)', messages.SUCCESS)
    complete_requests.short_description = 'Mark selected payouts as completed'

    def reject_requests(self, request, queryset):
        """Reject selected payout requests and return the funds"""
        count = self._process(
            request, queryset, PayoutRequest.REJECTED,
            rejection_reason='Rejected by admin'
        )
        self.message_user(request, f'✗ Rejected {count} payout request(s)', messages.WARNING)
    reject_requests.short_description = 'Reject selected payout requests'
