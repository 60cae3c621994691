from __future__ import annotations

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from core.utils.email_service import send_plain_email


class Command(BaseCommand):
    help = "Send a plain-text email through the configured email backend to check delivery."

    def add_arguments(self, parser):
        parser.add_argument("to", help="Recipient address")
        parser.add_argument("--subject", default="SouqMarketplace email check")
        parser.add_argument(
            "--body",
            default="Order and payout notifications from SouqMarketplace will arrive like this one.",
        )

    def handle(self, *args, **options):
        backend = settings.EMAIL_BACKEND
        if backend.endswith("smtp.EmailBackend") and not settings.EMAIL_HOST_PASSWORD:
            raise CommandError("SMTP backend selected but EMAIL_HOST_PASSWORD is empty.")

        try:
            sent = send_plain_email(
                subject=options["subject"],
                message=options["body"],
                recipient_list=[options["to"]],
            )
        except (ValueError, RuntimeError, OSError) as exc:
            raise CommandError(f"✗ Email to {options['to']} failed: {exc}") from exc

        self.stdout.write(self.style.SUCCESS(f"✓ {sent} message(s) sent to {options['to']} via {backend}"))
