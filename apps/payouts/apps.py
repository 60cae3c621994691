from django.apps import AppConfig


class PayoutsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.payouts'
    label = 'payouts'
    verbose_name = 'Vendor Payouts'

    def ready(self):
        from . import signals  # noqa: F401
