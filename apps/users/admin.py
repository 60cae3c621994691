from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    list_display = ('email', 'display_name', 'role', 'phone', 'is_active', 'date_joined')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('email', 'name', 'business_name', 'phone')
    ordering = ('-date_joined',)
    readonly_fields = ('date_joined', 'last_login')

    fieldsets = (
        (None, {'fields': ('email', 'password', 'role')}),
        ('Contact', {'fields': ('name', 'phone')}),
        ('Storefront', {'fields': ('business_name',), 'description': 'Vendors only'}),
        ('Access', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups')}),
        ('Dates', {'fields': ('date_joined', 'last_login')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'role', 'business_name', 'password1', 'password2'),
        }),
    )

    def display_name(self, obj):
        return obj.display_name
    display_name.short_description = 'Name'
