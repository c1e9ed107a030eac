import uuid
from decimal import Decimal

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "account_type",
                    models.CharField(
                        choices=[("employee", "Employee"), ("allotment", "Allotment")],
                        default="employee",
                        help_text="Personal balance or manager allotment",
                        max_length=20,
                    ),
                ),
                (
                    "balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Sum of posted transactions (maintained by the ledger)",
                        max_digits=12,
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        db_index=True,
                        default=True,
                        help_text="Whether this account accepts new postings",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="Employee who owns this account",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="coin_accounts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("owner", "account_type"),
                        name="unique_coin_account_per_owner",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("balance__gte", 0)),
                        name="coin_account_balance_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerTransaction",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("manager_award", "Manager Award"),
                            ("peer_transfer_sent", "Peer Transfer Sent"),
                            ("peer_transfer_received", "Peer Transfer Received"),
                            ("peer_transfer_refund", "Peer Transfer Refund"),
                            ("wellness_reward", "Wellness Reward"),
                            ("store_purchase", "Store Purchase"),
                            ("adjustment", "Adjustment"),
                            ("allotment_deposit", "Allotment Deposit"),
                            ("allotment_deduction", "Allotment Deduction"),
                            ("allotment_award", "Allotment Award"),
                        ],
                        db_index=True,
                        help_text="Kind of transaction",
                        max_length=40,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Amount (positive; adjustments may be negative)",
                        max_digits=12,
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Human-readable description",
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("posted", "Posted"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        blank=True,
                        help_text="Unique key to prevent duplicate transactions",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "posted_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the transaction was posted",
                        null=True,
                    ),
                ),
                (
                    "rejected_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the transaction was rejected",
                        null=True,
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        help_text="Account affected by this transaction",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="coins.account",
                    ),
                ),
                (
                    "source_employee",
                    models.ForeignKey(
                        blank=True,
                        help_text="Employee who initiated this movement",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sourced_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "target_employee",
                    models.ForeignKey(
                        blank=True,
                        help_text="Employee on the receiving side",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="targeted_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["account", "status"],
                        name="coin_tx_account_status_idx",
                    ),
                    models.Index(
                        fields=["source_employee", "transaction_type", "created_at"],
                        name="coin_tx_source_type_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("amount__gt", 0),
                            models.Q(
                                ("transaction_type", "adjustment"),
                                models.Q(("amount", 0), _negated=True),
                            ),
                            _connector="OR",
                        ),
                        name="ledger_transaction_amount_valid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AllotmentPolicy",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "recurring_budget",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Per-period auto-deposit amount (0 = disabled)",
                        max_digits=12,
                    ),
                ),
                (
                    "period_type",
                    models.CharField(
                        choices=[("monthly", "Monthly"), ("quarterly", "Quarterly")],
                        default="monthly",
                        help_text="Budget period",
                        max_length=20,
                    ),
                ),
                (
                    "last_applied_period_start",
                    models.DateTimeField(
                        blank=True,
                        help_text="Period start of the most recent recurring deposit",
                        null=True,
                    ),
                ),
                (
                    "manager",
                    models.OneToOneField(
                        help_text="Manager whose allotment this configures",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="allotment_policy",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "allotment policies",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("recurring_budget__gte", 0)),
                        name="allotment_policy_budget_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PendingTransfer",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "recipient_email",
                    models.EmailField(
                        db_index=True,
                        help_text="Email of the not-yet-registered recipient",
                        max_length=254,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Escrowed amount",
                        max_digits=12,
                    ),
                ),
                (
                    "message",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Message from the sender",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        help_text="Employee who sent the coins",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pending_transfers_sent",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sender_transaction",
                    models.OneToOneField(
                        help_text="Sender's posted debit for this transfer",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pending_transfer",
                        to="coins.ledgertransaction",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="pending_transfer_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PeerTransferLimit",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "period_type",
                    models.CharField(
                        choices=[("monthly", "Monthly"), ("quarterly", "Quarterly")],
                        default="monthly",
                        max_length=20,
                    ),
                ),
                (
                    "period_start",
                    models.DateTimeField(help_text="Start of the limit window"),
                ),
                (
                    "period_end",
                    models.DateTimeField(help_text="End of the limit window"),
                ),
                (
                    "max_amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Maximum total sent in the window",
                        max_digits=12,
                    ),
                ),
                (
                    "employee",
                    models.ForeignKey(
                        help_text="Employee this limit applies to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="peer_transfer_limits",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-period_start"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("employee", "period_type", "period_start"),
                        name="unique_peer_transfer_limit_period",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("max_amount__gte", 0)),
                        name="peer_transfer_limit_max_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("period_end__gt", models.F("period_start"))),
                        name="peer_transfer_limit_period_valid",
                    ),
                ],
            },
        ),
    ]
