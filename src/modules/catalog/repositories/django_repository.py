"""Django ORM implementation of the Product repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.catalog.models import Product, ProductVariant
from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a live product with its seller.

        Returns ``None`` for non-existent, soft-deleted or malformed IDs.
        """
        try:
            return (
                Product.objects.alive()
                .select_related("seller")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_variant(self, id: str) -> Optional[ProductVariant]:
        """Retrieve a variant whose product is still live.

        Inactive variants are returned; callers decide what that means.
        """
        try:
            return (
                ProductVariant.objects.select_related("product")
                .filter(id=id, product__deleted_at__isnull=True)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Product]":
        queryset = Product.objects.alive().select_related("seller")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        product = self.get_by_id(id)
        if not product:
            return False
        product.delete()
        logger.info("product.soft_deleted", product_id=str(id))
        return True
