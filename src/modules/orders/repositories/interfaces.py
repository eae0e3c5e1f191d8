"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the order conversion
adapter needs: creation and idempotency-key look-up.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order.

        ``data`` must include ``customer_id``, ``seller_id``, ``title``,
        ``quantity`` and ``unit_price``; optionally ``product_id``,
        ``idempotency_key``, ``source_negotiation_id`` and ``notes``.
        """

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""
