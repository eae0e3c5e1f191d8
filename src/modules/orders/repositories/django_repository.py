"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Domain
events collected on the aggregate are written to the transactional
outbox in the same ``transaction.atomic()`` block as the order.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.outbox import write_outbox_events
from modules.orders.models import Order
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            customer_id=data["customer_id"],
            seller_id=data["seller_id"],
            product_id=data.get("product_id"),
            variant_id=data.get("variant_id"),
            title=data["title"],
            quantity=data.get("quantity", 1),
            unit_price=data["unit_price"],
            idempotency_key=data.get("idempotency_key"),
            source_negotiation_id=data.get("source_negotiation_id"),
            notes=data.get("notes", ""),
        )
        order.save()

        log = logger.bind(order_id=str(order.id), order_number=order.order_number)
        log.info("order.created", total_amount=str(order.total_amount))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its parties.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("customer", "seller", "product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = Order.objects.alive().select_related("customer", "seller")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return Order.objects.filter(idempotency_key=key).first()

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and flush its domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        write_outbox_events(events, topic="orders")
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete an order by ID."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.soft_deleted", order_id=str(id))
        return True
