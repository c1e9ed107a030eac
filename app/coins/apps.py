"""
Coins app configuration.

This app provides the Guincoin ledger:
- Accounts and ledger transactions with materialized balances
- Manager allotments and awards
- Peer transfers with escrow for unregistered recipients
- Reporting and scheduled jobs
"""

from django.apps import AppConfig


class CoinsConfig(AppConfig):
    """Configuration for the coins application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "coins"
    verbose_name = "Guincoin Ledger"
