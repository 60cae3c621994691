"""
Wallet Admin
Balances are read-only here; money only moves through WalletService.
"""

from django.contrib import admin

from .models import Wallet, WalletTransaction


class WalletTransactionInline(admin.TabularInline):
    """Journal lines inside the Wallet admin"""
    model = WalletTransaction
    extra = 0
    can_delete = False
    fields = [
        'transaction_id', 'transaction_type', 'amount',
        'balance_before', 'balance_after', 'status', 'order', 'created_at'
    ]
    readonly_fields = fields
    ordering = ['-id']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ['user_email', 'balance', 'currency', 'is_active', 'created_at']
    list_filter = ['is_active', 'currency']
    search_fields = ['user__email', 'user__name']
    readonly_fields = ['user', 'balance', 'currency', 'created_at', 'updated_at']
    inlines = [WalletTransactionInline]

    def user_email(self, obj):
        return obj.user.email
    user_email.short_description = 'User'


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = [
        'transaction_id', 'wallet_user', 'transaction_type',
        'amount', 'balance_after', 'status', 'created_at'
    ]
    list_filter = ['transaction_type', 'status', 'payment_method', 'created_at']
    search_fields = ['transaction_id', 'gateway_transaction_id', 'wallet__user__email']
    readonly_fields = [
        'transaction_id', 'wallet', 'transaction_type', 'amount',
        'balance_before', 'balance_after', 'description', 'status',
        'payment_method', 'order', 'gateway_transaction_id', 'metadata', 'created_at'
    ]

    def wallet_user(self, obj):
        return obj.wallet.user.email
    wallet_user.short_description = 'User'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
