"""
Employee model.

Related files:
    - managers.py: Email-normalising manager
    - signals.py: Creates the employee's coin account on first save
    - services.py: provision() hook used by the sign-in flow
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from employees.managers import EmployeeManager


class Employee(AbstractBaseUser, PermissionsMixin):
    """
    An employee who can hold, send and receive Guincoins.

    Fields:
        email: Work email, lower-cased, unique; used for login and for
            matching pending transfers
        name: Display name shown to other employees
        is_manager: May award coins from an allotment
        is_admin: May deposit allotments, adjust balances and run reports
        is_active: Inactive employees can neither send nor receive
        is_staff: May access Django admin
        date_joined: When the record was created
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="Work email address (primary identifier, lower-case)",
    )
    name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Display name",
    )

    # Roles
    is_manager = models.BooleanField(
        default=False,
        help_text="Whether this employee can award coins from an allotment",
    )
    is_admin = models.BooleanField(
        default=False,
        help_text="Whether this employee can use ledger administration",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this employee is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the employee can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the employee record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the employee record was last modified",
    )

    USERNAME_FIELD = "email"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = EmployeeManager()

    class Meta:
        verbose_name = "employee"
        verbose_name_plural = "employees"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.name.split(" ")[0] if self.name else self.email.split("@")[0]

    @property
    def display_name(self) -> str:
        """Name used in transaction descriptions and notifications."""
        return self.get_full_name()
