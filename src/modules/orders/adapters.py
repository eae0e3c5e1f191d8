"""Order conversion adapter for accepted negotiations.

Implements ``IOrderConversionAdapter``: turns an accepted negotiation into
exactly one ``Order``.  Idempotent keyed by the negotiation id, so a retry
after a transient failure returns the order created the first time.

Stock for catalog products (or the negotiated variant) is reserved under
``SELECT FOR UPDATE``; the
reservation and the order share one savepoint, so losing the idempotency
race rolls the reservation back too.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from django.db import IntegrityError, transaction

from modules.catalog.models import Product, ProductVariant
from modules.negotiations.ports import OrderRef, SubjectRef
from modules.orders.constants import NEGOTIATION_KEY_PREFIX
from modules.orders.events import OrderCreated
from modules.orders.exceptions import InsufficientStock, ProductNotFound
from modules.orders.models import Order
from modules.orders.repositories import IOrderRepository, OrderDjangoRepository

logger = structlog.get_logger(__name__)


class NegotiatedOrderAdapter:
    """Creates orders from negotiations through the order repository."""

    def __init__(self, order_repository: Optional[IOrderRepository] = None) -> None:
        self._order_repo = order_repository or OrderDjangoRepository()

    @staticmethod
    def idempotency_key(thread_id: UUID) -> str:
        return f"{NEGOTIATION_KEY_PREFIX}{thread_id}"

    def convert(
        self,
        thread_id: UUID,
        final_price: Decimal,
        subject_ref: SubjectRef,
        customer_id: UUID,
        seller_id: UUID,
        quantity: int = 1,
    ) -> OrderRef:
        """Create (or return) the order for negotiation *thread_id*.

        Raises:
            ProductNotFound: the negotiated product or variant was removed.
            InsufficientStock: not enough stock left for *quantity*.
        """
        key = self.idempotency_key(thread_id)
        log = logger.bind(negotiation_id=str(thread_id), idempotency_key=key)

        existing = self._order_repo.get_by_idempotency_key(key)
        if existing:
            log.info("order.idempotency_hit", order_id=str(existing.id))
            return self._ref(existing)

        try:
            with transaction.atomic():
                if subject_ref.variant_id is not None:
                    self._reserve_variant_stock(subject_ref.variant_id, quantity, log)
                elif subject_ref.product_id is not None:
                    self._reserve_stock(subject_ref.product_id, quantity, log)

                order = self._order_repo.create(
                    {
                        "customer_id": customer_id,
                        "seller_id": seller_id,
                        "product_id": subject_ref.product_id,
                        "variant_id": subject_ref.variant_id,
                        "title": subject_ref.title,
                        "quantity": quantity,
                        "unit_price": final_price,
                        "idempotency_key": key,
                        "source_negotiation_id": thread_id,
                        "notes": subject_ref.specification,
                    }
                )
                order.add_domain_event(
                    OrderCreated(
                        aggregate_id=order.id,
                        order_number=order.order_number,
                        source_negotiation_id=str(thread_id),
                        total_amount=str(order.total_amount),
                    )
                )
                self._order_repo.save(order)
        except IntegrityError:
            existing = self._order_repo.get_by_idempotency_key(key)
            if existing is None:
                raise
            log.info("order.idempotency_race_lost", order_id=str(existing.id))
            return self._ref(existing)

        log.info(
            "order.created_from_negotiation",
            order_id=str(order.id),
            order_number=order.order_number,
        )
        return self._ref(order)

    @staticmethod
    def _reserve_stock(product_id: UUID, quantity: int, log) -> None:
        product = (
            Product.objects.alive().select_for_update().filter(id=product_id).first()
        )
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        if product.stock_quantity < quantity:
            raise InsufficientStock(
                f"Product {product.sku}: requested {quantity}, "
                f"available {product.stock_quantity}."
            )
        product.stock_quantity -= quantity
        product.save(update_fields=["stock_quantity", "updated_at"])
        log.info(
            "order.stock_reserved",
            product_id=str(product.id),
            quantity=quantity,
            remaining=product.stock_quantity,
        )

    @staticmethod
    def _reserve_variant_stock(variant_id: UUID, quantity: int, log) -> None:
        variant = (
            ProductVariant.objects.select_for_update()
            .filter(id=variant_id, product__deleted_at__isnull=True)
            .first()
        )
        if not variant:
            raise ProductNotFound(f"Variant {variant_id} not found.")
        if variant.stock_quantity < quantity:
            raise InsufficientStock(
                f"Variant {variant.sku}: requested {quantity}, "
                f"available {variant.stock_quantity}."
            )
        variant.stock_quantity -= quantity
        variant.save(update_fields=["stock_quantity", "updated_at"])
        log.info(
            "order.variant_stock_reserved",
            variant_id=str(variant.id),
            quantity=quantity,
            remaining=variant.stock_quantity,
        )

    @staticmethod
    def _ref(order: Order) -> OrderRef:
        return OrderRef(order_id=order.id, order_number=order.order_number)
