import django.db.models.deletion
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="NegotiationMessage",
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
                ("negotiation_id", models.UUIDField(db_index=True)),
                (
                    "message_type",
                    models.CharField(
                        choices=[
                            ("NEGOTIATION", "Negotiation"),
                            ("SYSTEM", "System"),
                        ],
                        default="NEGOTIATION",
                        max_length=20,
                    ),
                ),
                ("body", models.TextField()),
                ("is_read", models.BooleanField(default=False)),
                (
                    "sender",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="negotiation_messages",
                        to="accounts.account",
                    ),
                ),
            ],
            options={
                "db_table": "negotiation_messages",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["negotiation_id", "created_at"],
                        name="negmsg_thread_created_idx",
                    ),
                ],
            },
        ),
    ]
