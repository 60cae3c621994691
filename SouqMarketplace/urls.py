"""
Main URL configuration for SouqMarketplace project.

The storefront API lives in a separate service; this project only exposes
the back-office admin used to review orders and process vendor payouts.
"""
from django.contrib import admin
from django.urls import path

admin.site.site_header = 'SouqMarketplace Back Office'
admin.site.site_title = 'SouqMarketplace Admin'

urlpatterns = [
    path('admin/', admin.site.urls),
]
