"""
Payout Signals
Email the vendor once an admin settles or rejects their payout request
"""

import logging

from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import PayoutRequest

logger = logging.getLogger(__name__)

NOTIFY_STATUSES = (PayoutRequest.COMPLETED, PayoutRequest.REJECTED, PayoutRequest.FAILED)


@receiver(pre_save, sender=PayoutRequest)
def remember_previous_status(sender, instance, **kwargs):
    if instance.pk:
        instance._previous_status = (
            PayoutRequest.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
        )
    else:
        instance._previous_status = None


@receiver(post_save, sender=PayoutRequest)
def notify_vendor_on_settlement(sender, instance, created, **kwargs):
    """
    Queue the vendor email for after commit so a rolled-back decision
    never produces one
    """
    previous = getattr(instance, '_previous_status', None)
    if created or instance.status == previous or instance.status not in NOTIFY_STATUSES:
        return

    from apps.orders.services.notifications import notification_service

    def send():
        if notification_service.send_payout_processed(instance):
            logger.info(f'Payout #{instance.pk} {instance.status} email sent to vendor {instance.vendor_id}')

    transaction.on_commit(send)
