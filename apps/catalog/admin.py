from django.contrib import admin

from .models import Product, ProductVariation


class ProductVariationInline(admin.TabularInline):
    model = ProductVariation
    extra = 0
    fields = ['name', 'sku', 'price', 'stock']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['product_name', 'vendor_name', 'sku', 'price_per_unit', 'special_price', 'stock', 'is_active']
    list_filter = ['is_active', 'created_at']
    search_fields = ['product_name', 'sku', 'vendor__email', 'vendor__business_name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ProductVariationInline]

    fieldsets = (
        ('Product', {
            'fields': ('vendor', 'product_name', 'sku', 'description', 'is_active')
        }),
        ('Pricing', {
            'fields': (
                'currency', 'price_per_unit', 'special_price',
                'special_price_starting_date', 'special_price_ending_date',
            )
        }),
        ('Inventory', {
            'fields': ('stock',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def vendor_name(self, obj):
        return obj.vendor.display_name
    vendor_name.short_description = 'Vendor'
