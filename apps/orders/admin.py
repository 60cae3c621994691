"""
Orders Admin
Line items and both history logs are shown read-only; status changes and
cancellations go through OrderService so wallets and earnings stay in step.
"""

from django.contrib import admin, messages
from django.utils.html import format_html

from core.exceptions import MarketplaceError

from .models import Order, OrderItem, OrderStatusHistory, PaymentHistory
from .services import order_service


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    fields = ['product', 'variation', 'product_name', 'quantity', 'price', 'total']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    fields = ['status', 'note', 'timestamp']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class PaymentHistoryInline(admin.TabularInline):
    model = PaymentHistory
    extra = 0
    can_delete = False
    fields = ['payment_gateway', 'gateway_transaction_id', 'payment_status', 'payment_method', 'currency', 'payment_date']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        'order_number', 'user', 'grand_total', 'currency',
        'status_badge', 'payment_status', 'payment_method_used', 'created_at'
    ]
    list_filter = ['status', 'payment_status', 'payment_method_used', 'created_at']
    search_fields = ['order_number', 'user__email', 'shipping_full_name', 'tracking_number']
    readonly_fields = [
        'order_number', 'user', 'currency', 'total_price', 'shipping_fee', 'discount',
        'tax', 'grand_total', 'status', 'payment_status', 'payment_method_used',
        'transaction_id', 'actual_delivery_date', 'created_at', 'updated_at'
    ]
    inlines = [OrderItemInline, OrderStatusHistoryInline, PaymentHistoryInline]

    fieldsets = (
        ('Order', {
            'fields': ('order_number', 'user', 'status', 'payment_status', 'payment_method_used', 'transaction_id')
        }),
        ('Totals', {
            'fields': ('currency', 'total_price', 'shipping_fee', 'tax', 'discount', 'grand_total', 'promo_code')
        }),
        ('Shipping', {
            'fields': (
                'shipping_full_name', 'shipping_mobile_number', 'shipping_address',
                'shipping_city', 'shipping_state', 'shipping_zip_code', 'shipping_country',
                'shipping_method_id', 'tracking_number'
            )
        }),
        ('Delivery', {
            'fields': ('estimated_delivery_date', 'actual_delivery_date', 'order_notes')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    actions = ['cancel_orders']

    def status_badge(self, obj):
        colors = {
            'PENDING': 'orange',
            'CONFIRMED': 'blue',
            'PREPARING_FOR_SHIPMENT': 'blue',
            'OUT_FOR_DELIVERY': 'purple',
            'DELIVERED': 'green',
            'CANCELLED': 'red',
        }
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            colors.get(obj.status, 'gray'), obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def has_add_permission(self, request):
        return False

    # Admin Actions
    def cancel_orders(self, request, queryset):
        """Cancel selected orders, refunding wallet payments"""
        count = 0
        for order in queryset:
            try:
                order_service.cancel_order(order.pk, 'Cancelled by admin')
                count += 1
            except MarketplaceError as e:
                self.message_user(request, f'Order {order.order_number}: {e.message}', messages.ERROR)
        self.message_user(request, f'✗ Cancelled {count} order(s)', messages.WARNING)
    cancel_orders.short_description = 'Cancel selected orders'
