"""
Test configuration and fixtures for coin service tests.

This module provides:
- Employees in the roles the services care about
- Funded employee and allotment accounts
- API clients authenticated as those employees

Notifications are disabled by default; tests that assert on them enable
GUINCOIN_NOTIFICATIONS_ENABLED explicitly.

Usage:
    def test_example(sender, recipient):
        result = TransferService.send_transfer(sender, recipient.email, "30")
        assert result.success
"""

from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from coins.ledger.tests.factories import post_credit
from coins.state_machines import AccountType
from employees.tests.factories import EmployeeFactory


@pytest.fixture(autouse=True)
def ledger_settings(settings):
    """Deterministic Guincoin settings for every coin test."""
    settings.GUINCOIN_NOTIFICATIONS_ENABLED = False
    settings.GUINCOIN_WORKSPACE_DOMAIN = "example.com"
    settings.GUINCOIN_DEFAULT_TRANSFER_LIMIT = 500
    settings.GUINCOIN_LARGE_TRANSFER_THRESHOLD = 50
    settings.GUINCOIN_REPEATED_TRANSFER_THRESHOLD = 3
    settings.GUINCOIN_REPORT_RECIPIENTS = []
    return settings


# =============================================================================
# Employee Fixtures
# =============================================================================


@pytest.fixture
def sender(db):
    """Alice, with 100 spendable coins."""
    employee = EmployeeFactory(email="alice@example.com", name="Alice")
    post_credit(employee, Decimal("100.00"))
    return employee


@pytest.fixture
def recipient(db):
    """Bob, registered with an empty balance."""
    return EmployeeFactory(email="bob@example.com", name="Bob")


@pytest.fixture
def manager(db):
    """A manager with a 200 coin allotment."""
    employee = EmployeeFactory(email="lead@example.com", name="Team Lead", is_manager=True)
    post_credit(employee, Decimal("200.00"), account_type=AccountType.ALLOTMENT)
    return employee


@pytest.fixture
def unfunded_manager(db):
    """A manager whose allotment account does not exist yet."""
    return EmployeeFactory(email="newlead@example.com", name="New Lead", is_manager=True)


@pytest.fixture
def admin_employee(db):
    """An employee with ledger administration rights."""
    return EmployeeFactory(email="admin@example.com", name="Ledger Admin", is_admin=True)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def sender_client(sender):
    client = APIClient()
    client.force_authenticate(user=sender)
    return client


@pytest.fixture
def manager_client(manager):
    client = APIClient()
    client.force_authenticate(user=manager)
    return client


@pytest.fixture
def admin_client(admin_employee):
    client = APIClient()
    client.force_authenticate(user=admin_employee)
    return client
