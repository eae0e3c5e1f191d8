"""Collaborators the negotiation engine consumes.

Both are plain ``Protocol`` classes so the service can be driven by the
Django implementations in production and by ``Mock`` objects in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol
from uuid import UUID


@dataclass(frozen=True)
class SubjectRef:
    """What is being negotiated: a catalog product (optionally one of its
    variants) or a custom piece."""

    product_id: Optional[UUID]
    title: str
    specification: str = ""
    variant_id: Optional[UUID] = None

    @property
    def is_custom(self) -> bool:
        return self.product_id is None


@dataclass(frozen=True)
class OrderRef:
    """Reference to the order created from an accepted negotiation."""

    order_id: UUID
    order_number: str

    def __str__(self) -> str:
        return str(self.order_id)


class IOrderConversionAdapter(Protocol):
    """Turns an accepted negotiation into a purchase order.

    Implementations must be idempotent keyed by ``thread_id``: calling
    ``convert`` again for the same thread returns the same order.
    """

    def convert(
        self,
        thread_id: UUID,
        final_price: Decimal,
        subject_ref: SubjectRef,
        customer_id: UUID,
        seller_id: UUID,
        quantity: int = 1,
    ) -> OrderRef: ...


class IMessagingChannel(Protocol):
    """Posts a chat-visible summary of a negotiation event."""

    def post_event(
        self,
        thread_id: UUID,
        actor_id: Optional[UUID],
        rendered_text: str,
    ) -> object: ...
