from __future__ import annotations

from typing import Iterable, List, Optional

from django.conf import settings
from django.core.mail import send_mail


def clean_recipients(recipient_list: Optional[Iterable[str]]) -> List[str]:
    """Strip blanks and whitespace; raise if nothing usable is left."""
    if isinstance(recipient_list, str):
        recipient_list = [recipient_list]

    recipients = [str(r).strip() for r in recipient_list or () if r and str(r).strip()]
    if not recipients:
        raise ValueError("No usable email address in recipient list")
    return recipients


def send_plain_email(
    subject: str,
    message: str,
    recipient_list: Iterable[str],
    from_email: Optional[str] = None,
) -> int:
    """
    Send a plain-text email through Django's configured email backend.

    - Sender defaults to `settings.DEFAULT_FROM_EMAIL`
    - Raises on failure (`fail_silently=False`); callers on a best-effort
      path are expected to catch and log
    - Returns the number of messages sent
    """
    if not isinstance(subject, str) or not subject.strip():
        raise ValueError("Email subject is required")
    if not isinstance(message, str):
        raise ValueError("Email body must be text")

    sent = send_mail(
        subject,
        message,
        from_email or settings.DEFAULT_FROM_EMAIL,
        clean_recipients(recipient_list),
        fail_silently=False,
    )
    if not sent:
        raise RuntimeError(f"Email backend accepted no messages for '{subject}'")
    return sent
