"""
Add celery-beat schedules for recurring allotments and the daily report.

Both tasks run once a day: recurring allotments just after midnight so
the new period's budget is available in the morning, the report at
06:00 covering the previous 24 hours.
"""

from django.db import migrations

RECURRING_TASK_NAME = "Apply Recurring Allotments"
REPORT_TASK_NAME = "Send Daily Ledger Report"


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for allotments and reporting."""
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Daily at 00:05
    allotment_schedule, _ = CrontabSchedule.objects.get_or_create(
        minute="5",
        hour="0",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )
    PeriodicTask.objects.get_or_create(
        name=RECURRING_TASK_NAME,
        defaults={
            "task": "coins.tasks.apply_recurring_allotments",
            "crontab": allotment_schedule,
            "enabled": True,
            "description": (
                "Deposits each manager's recurring budget once per period. "
                "Idempotent per manager and period."
            ),
        },
    )

    # Daily at 06:00
    report_schedule, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="6",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )
    PeriodicTask.objects.get_or_create(
        name=REPORT_TASK_NAME,
        defaults={
            "task": "coins.tasks.send_daily_report",
            "crontab": report_schedule,
            "enabled": True,
            "description": "Emails balances, 24h totals and transfer anomalies to admins.",
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[RECURRING_TASK_NAME, REPORT_TASK_NAME],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("coins", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
