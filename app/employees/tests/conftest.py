"""
Test configuration and fixtures for employee tests.
"""

import pytest

from employees.tests.factories import EmployeeFactory


# =============================================================================
# Employee Fixtures
# =============================================================================


@pytest.fixture
def employee(db):
    """A regular active employee."""
    return EmployeeFactory(email="ana@example.com", name="Ana Silva")


@pytest.fixture
def manager(db):
    """An employee who can award coins."""
    return EmployeeFactory(email="lead@example.com", name="Team Lead", is_manager=True)


@pytest.fixture
def inactive_employee(db):
    """A deactivated employee."""
    return EmployeeFactory(is_active=False)
