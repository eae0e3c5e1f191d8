"""Product model for artisan listings.

Business rules implemented:
- RN-PRO-001: SKU must be unique in the system.
- RN-PRO-002: Inactive product cannot be sold or negotiated.
- RN-PRO-003: Price must be greater than zero.
- RN-PRO-004: Stock quantity cannot be negative.
- RN-PRO-005: Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
- RN-PRO-006: Negotiation is opt-in per listing (``allow_negotiation``).
- RN-PRO-007: A variant carries its own price and stock; an inactive
  variant cannot be sold or negotiated.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

import structlog

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Product(SoftDeleteModel):
    """Product aggregate root, owned by one artisan (``seller``).

    ``sku`` is normalised to uppercase on save to prevent visual duplicates
    (e.g. "sku-01" vs "SKU-01").
    """

    seller = models.ForeignKey(
        "accounts.Account",
        on_delete=models.PROTECT,
        related_name="products",
    )
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    discount_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )
    allow_negotiation = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    @property
    def effective_price(self) -> Decimal:
        """Price a buyer pays today: the discount price when one is set."""
        discount: Optional[Decimal] = self.discount_price
        return discount if discount else self.price

    @property
    def is_negotiable(self) -> bool:
        return (
            self.status == ProductStatus.ACTIVE
            and self.allow_negotiation
            and not self.is_deleted
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})
        if self.discount_price is not None and self.discount_price >= self.price:
            raise ValidationError(
                {"discount_price": "Discount price must be lower than price."}
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                seller_id=str(self.seller_id),
                sku=self.sku,
            )

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class ProductVariant(BaseModel):
    """A sellable version of a product (size, colour, glaze...).

    Price and stock live on the variant; the parent product supplies the
    seller and the negotiation opt-in.
    """

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="variants",
    )
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    discount_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    attributes = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "product_variants"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="product_variants_price_positive",
            ),
        ]

    @property
    def effective_price(self) -> Decimal:
        discount: Optional[Decimal] = self.discount_price
        return discount if discount else self.price

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.discount_price is not None and self.discount_price >= self.price:
            raise ValidationError(
                {"discount_price": "Discount price must be lower than price."}
            )

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
