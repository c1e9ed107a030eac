"""
Pytest fixtures for ledger tests.

Sections:
    - Employee Fixtures
    - Account Fixtures
"""

from decimal import Decimal

import pytest

from coins.ledger.services import ledger
from coins.ledger.tests.factories import post_credit
from coins.state_machines import AccountType
from employees.tests.factories import EmployeeFactory


# ==========================================================================
# Employee Fixtures
# ==========================================================================


@pytest.fixture
def employee(db):
    return EmployeeFactory(email="ana@example.com", name="Ana Silva")


@pytest.fixture
def other_employee(db):
    return EmployeeFactory(email="bob@example.com", name="Bob Jones")


@pytest.fixture
def admin_employee(db):
    return EmployeeFactory(email="admin@example.com", name="Ledger Admin", is_admin=True)


# ==========================================================================
# Account Fixtures
# ==========================================================================


@pytest.fixture
def account(employee):
    """The employee's (empty) EMPLOYEE account, created by signal."""
    return ledger.get_account_for(employee, AccountType.EMPLOYEE)


@pytest.fixture
def funded_account(employee, account):
    """The employee's account with 100.00 posted."""
    post_credit(employee, Decimal("100.00"))
    account.refresh_from_db()
    return account
