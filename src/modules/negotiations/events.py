"""Domain events for the Negotiations bounded context.

Payload fields are plain strings so the events survive the JSON round trip
through the transactional outbox unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class NegotiationOpened(DomainEvent):
    """Raised when a customer proposes or a seller invites."""

    customer_id: str = ""
    seller_id: str = ""
    actor: str = ""
    price: str = ""


@dataclass(frozen=True)
class OfferCountered(DomainEvent):
    """Raised on every counter-offer."""

    actor: str = ""
    price: str = ""
    round_count: int = 0


@dataclass(frozen=True)
class NegotiationAccepted(DomainEvent):
    """Raised when an offer is accepted; order conversion follows."""

    actor: str = ""
    price: str = ""


@dataclass(frozen=True)
class NegotiationClosed(DomainEvent):
    """Raised when a thread is rejected, cancelled or expired."""

    status: str = ""
    actor: str = ""


@dataclass(frozen=True)
class NegotiationCompleted(DomainEvent):
    """Raised once the order for an accepted negotiation exists."""

    order_id: str = ""
    order_number: str = ""
