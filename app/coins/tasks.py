"""
Celery tasks for the coin ledger.

This module provides async tasks for:
- Delivering notifications (fire-and-forget, never raises)
- Applying recurring allotment deposits (celery-beat, daily)
- Emailing the daily ledger report (celery-beat, daily)

Usage:
    from coins.tasks import apply_recurring_allotments

    # Normally scheduled by celery-beat; safe to run by hand
    apply_recurring_allotments.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


# =============================================================================
# Notifications
# =============================================================================


@shared_task(ignore_result=True)
def send_notification(recipient_email: str, payload: dict) -> dict:
    """
    Deliver a notification as a plain-text email.

    Delivery failures are logged and reported in the return value. They
    are never retried into the ledger path and never raised.

    Args:
        recipient_email: Address to notify
        payload: {"subject": ..., "body": ...}

    Returns:
        Dict with delivery status
    """
    subject = payload.get("subject") or "Guincoin notification"
    body = payload.get("body") or ""

    try:
        send_mail(
            subject=subject,
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            fail_silently=False,
        )
    except Exception:
        logger.exception(
            "Notification delivery failed",
            extra={"recipient": recipient_email, "subject": subject},
        )
        return {"status": "failed", "recipient": recipient_email}

    logger.info(
        "Notification delivered",
        extra={"recipient": recipient_email, "subject": subject},
    )
    return {"status": "sent", "recipient": recipient_email}


# =============================================================================
# Scheduled Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def apply_recurring_allotments(self) -> dict:
    """
    Deposit each manager's recurring budget for the current period.

    Scheduled daily via celery-beat. Deposits carry a per-period
    idempotency key, so retries and re-runs never double-deposit.

    Returns:
        Dict with applied / skipped / failed counts
    """
    # Import here to avoid circular imports
    from coins.services import AllotmentService

    counts = AllotmentService.apply_recurring_allotments()
    return {"status": "completed", **counts}


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def send_daily_report(self) -> dict:
    """
    Email the daily ledger report to GUINCOIN_REPORT_RECIPIENTS.

    Scheduled daily via celery-beat.

    Returns:
        Dict with status and number of recipients
    """
    from coins.services import ReportService

    recipients = list(getattr(settings, "GUINCOIN_REPORT_RECIPIENTS", []) or [])
    if not recipients:
        logger.info("Daily report skipped: no recipients configured")
        return {"status": "skipped", "sent": 0}

    report = ReportService.daily_report()
    subject, body = ReportService.render_daily_report(report)

    sent = send_mail(
        subject=subject,
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=recipients,
        fail_silently=False,
    )

    logger.info(
        "Daily report sent",
        extra={
            "recipient_count": len(recipients),
            "anomaly_count": len(report["anomalies"]),
        },
    )
    return {"status": "sent", "sent": sent, "anomalies": len(report["anomalies"])}
