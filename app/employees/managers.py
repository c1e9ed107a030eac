"""
Custom manager for email-keyed employee records.

Related files:
    - models.py: Employee model that uses this manager

Note:
    Guincoin matches pending transfers by recipient email, so the whole
    address is lower-cased, not only the domain part.
"""

from django.contrib.auth.models import BaseUserManager


def normalize_employee_email(email: str) -> str:
    """Lower-case and strip an email address for lookups and storage."""
    return (email or "").strip().lower()


class EmployeeManager(BaseUserManager):
    """
    Manager for the Employee model.

    Usage:
        employee = Employee.objects.create_user(
            email="ana@example.com",
            name="Ana",
        )

        manager = Employee.objects.create_user(
            email="lead@example.com",
            name="Lead",
            is_manager=True,
        )
    """

    def get_by_email(self, email: str):
        """Return the employee with this email, or None."""
        return self.filter(email=normalize_employee_email(email)).first()

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save an employee.

        Args:
            email: Work email address (required)
            password: Optional password; OAuth users get an unusable one
            **extra_fields: name, is_manager, is_admin, ...

        Raises:
            ValueError: If email is not provided
        """
        email = normalize_employee_email(email)
        if not email:
            raise ValueError("The Email field must be set")

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)

        employee = self.model(email=email, **extra_fields)

        if password:
            employee.set_password(password)
        else:
            employee.set_unusable_password()

        employee.save(using=self._db)
        return employee

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser, who is also a ledger admin.

        Raises:
            ValueError: If is_staff or is_superuser is not True
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_admin", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, **extra_fields)
