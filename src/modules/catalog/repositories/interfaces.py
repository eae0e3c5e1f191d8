"""Product repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Product, ProductVariant


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Product]":
        """List products with optional filters."""

    @abstractmethod
    def get_variant(self, id: str) -> Optional["ProductVariant"]:
        """Retrieve a variant with its product, or ``None``."""
