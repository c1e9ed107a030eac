"""
Django app configuration for employees.
"""

from django.apps import AppConfig


class EmployeesConfig(AppConfig):
    """Configuration for the employees application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "employees"
    verbose_name = "Employees"

    def ready(self):
        """
        Import signals when the app is ready.

        This ensures the account provisioning handler is connected
        when Django starts.
        """
        from employees import signals  # noqa: F401
