"""Order model.

Business rules implemented:
- Idempotency via ``idempotency_key`` unique constraint.
- At most one order per negotiation (``source_negotiation_id`` unique).
- Order number auto-generated as human-readable identifier.
- Customer / seller FKs use PROTECT to preserve financial history.
- ``unit_price`` is the negotiated price; ``total_amount`` is always
  ``quantity * unit_price`` (calculated on save).
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import SoftDeleteModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, SoftDeleteModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.

    ``product`` is empty for bespoke pieces negotiated from a free-form
    specification; ``title`` always describes what was bought.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    customer: models.ForeignKey = models.ForeignKey(
        "accounts.Account",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    seller: models.ForeignKey = models.ForeignKey(
        "accounts.Account",
        on_delete=models.PROTECT,
        related_name="sales",
    )
    product: models.ForeignKey = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    variant: models.ForeignKey = models.ForeignKey(
        "catalog.ProductVariant",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    title: models.CharField = models.CharField(max_length=255)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        editable=False,
    )
    notes: models.TextField = models.TextField(blank=True, default="")
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )
    source_negotiation_id: models.UUIDField = models.UUIDField(
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="orders_quantity_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        self.total_amount = self.unit_price * self.quantity
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"
