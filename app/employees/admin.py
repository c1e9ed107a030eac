"""
Django admin configuration for employees.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from employees.models import Employee


@admin.register(Employee)
class EmployeeAdmin(BaseUserAdmin):
    """
    Admin configuration for Employee.

    Customized for email-based identity; roles (manager/admin) are
    edited here, balances are not.
    """

    list_display = (
        "email",
        "name",
        "is_manager",
        "is_admin",
        "is_active",
        "date_joined",
    )
    list_filter = (
        "is_manager",
        "is_admin",
        "is_active",
        "is_staff",
    )
    search_fields = ("email", "name")
    ordering = ("-date_joined",)

    fieldsets = (
        (None, {"fields": ("email", "name", "password")}),
        ("Roles", {"fields": ("is_manager", "is_admin")}),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser")},
        ),
        ("Permissions", {"fields": ("groups", "user_permissions")}),
        ("Important dates", {"fields": ("date_joined", "last_login")}),
    )
    readonly_fields = ("date_joined", "last_login")

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "name", "is_manager", "is_admin"),
            },
        ),
    )
