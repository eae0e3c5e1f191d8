import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="NegotiationThread",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("specification", models.TextField(blank=True, default="")),
                ("title", models.CharField(max_length=255)),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "list_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("COUNTER_OFFERED", "Counter offered"),
                            ("ACCEPTED", "Accepted"),
                            ("REJECTED", "Rejected"),
                            ("EXPIRED", "Expired"),
                            ("CANCELLED", "Cancelled"),
                            ("COMPLETED", "Completed"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                (
                    "current_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                ("round_count", models.PositiveIntegerField(default=0)),
                (
                    "last_actor",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("customer", "Customer"),
                            ("seller", "Seller"),
                            ("system", "System"),
                        ],
                        max_length=10,
                        null=True,
                    ),
                ),
                ("last_sequence", models.PositiveIntegerField(default=0)),
                (
                    "expires_at",
                    models.DateTimeField(blank=True, default=None, null=True),
                ),
                (
                    "order_ref",
                    models.CharField(
                        blank=True, default=None, max_length=64, null=True, unique=True
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="negotiations_as_customer",
                        to="accounts.account",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="negotiations_as_seller",
                        to="accounts.account",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="negotiations",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "db_table": "negotiation_thread",
                "ordering": ["-updated_at"],
                "indexes": [
                    models.Index(
                        fields=["customer", "status"],
                        name="negthread_customer_status_idx",
                    ),
                    models.Index(
                        fields=["seller", "status"],
                        name="negthread_seller_status_idx",
                    ),
                    models.Index(
                        fields=["status", "expires_at"],
                        name="negthread_status_expires_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("customer", models.F("seller")), _negated=True
                        ),
                        name="negthread_distinct_parties",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 1)),
                        name="negthread_quantity_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("order_ref__isnull", False), ("status", "COMPLETED")
                            ),
                            models.Q(
                                models.Q(("status", "COMPLETED"), _negated=True),
                                ("order_ref__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="negthread_completed_iff_order_ref",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEvent",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("sequence", models.PositiveIntegerField()),
                (
                    "actor",
                    models.CharField(
                        choices=[
                            ("customer", "Customer"),
                            ("seller", "Seller"),
                            ("system", "System"),
                        ],
                        max_length=10,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("PROPOSE", "Propose"),
                            ("COUNTER", "Counter"),
                            ("ACCEPT", "Accept"),
                            ("REJECT", "Reject"),
                            ("CANCEL", "Cancel"),
                            ("EXPIRE", "Expire"),
                            ("COMPLETE", "Complete"),
                        ],
                        max_length=10,
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                ("note", models.TextField(blank=True, default="")),
                (
                    "expires_at",
                    models.DateTimeField(blank=True, default=None, null=True),
                ),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "actor_account",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="accounts.account",
                    ),
                ),
                (
                    "thread",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_events",
                        to="negotiations.negotiationthread",
                    ),
                ),
            ],
            options={
                "db_table": "negotiation_ledger_event",
                "ordering": ["thread", "sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("thread", "sequence"),
                        name="ledger_thread_sequence_uniq",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("sequence__gte", 1)),
                        name="ledger_sequence_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("price__isnull", True),
                            ("price__gt", 0),
                            _connector="OR",
                        ),
                        name="ledger_price_positive",
                    ),
                ],
            },
        ),
    ]
