"""
Django signals for employees.

This module defines signal handlers for:
- Creating the employee's coin account when an Employee is created

Related files:
    - apps.py: Signal import in ready()
    - coins/ledger/services.py: get_or_create_account()
"""

import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_employee_account(sender, instance, created, **kwargs):
    """
    Create the coin account for newly created employees.

    Accounts are created exactly once per employee and never deleted;
    get_or_create makes the handler safe to re-run on fixtures/loaddata.
    """
    if not created or kwargs.get("raw"):
        return

    from coins.ledger.services import ledger
    from coins.state_machines import AccountType

    account = ledger.get_or_create_account(instance, AccountType.EMPLOYEE)
    logger.debug(
        "Account provisioned for employee",
        extra={"employee_id": instance.pk, "account_id": str(account.id)},
    )
