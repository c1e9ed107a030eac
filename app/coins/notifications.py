"""
Outbound notification hook for coin movements.

notify() is fire-and-forget: it schedules coins.tasks.send_notification
to run after the surrounding database transaction commits, so a rolled
back transfer never notifies anyone and a failed delivery never rolls
back a transfer.

Payloads carry a subject and a plain-text body. Only the owning party's
own figures go into a payload (a sender may see their new balance; a
recipient never sees the sender's balance or a manager's budget).

Usage:
    from coins.notifications import notify

    with transaction.atomic():
        ...post transactions...
        notify("bob@example.com", {
            "subject": "You received 30 Guincoins",
            "body": "Alice sent you 30 coins: Lunch",
        })
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)


def notify(recipient_email: str, payload: dict[str, Any]) -> None:
    """
    Schedule a notification to be delivered after commit.

    Outside an atomic block the task is enqueued immediately. Enqueue
    failures (broker down) are logged and never raised.
    """
    if not getattr(settings, "GUINCOIN_NOTIFICATIONS_ENABLED", True):
        return
    if not recipient_email:
        return

    transaction.on_commit(lambda: _enqueue(recipient_email, payload))


def _enqueue(recipient_email: str, payload: dict[str, Any]) -> None:
    # Import here to avoid circular imports
    from coins.tasks import send_notification

    try:
        send_notification.delay(recipient_email, payload)
    except Exception:
        logger.exception(
            "Failed to enqueue notification",
            extra={"recipient": recipient_email, "subject": payload.get("subject")},
        )


def format_coins(amount) -> str:
    """Render an amount the way chat messages show it ("30" or "12.50")."""
    if amount == amount.to_integral_value():
        return f"{amount:.0f}"
    return f"{amount:.2f}"
