"""Event handlers for Negotiations domain events.

Subscribed on the in-process event bus in ``NegotiationsConfig.ready``;
events reach them through the outbox relay (``core.relay_outbox``).
"""

from __future__ import annotations

import structlog

from modules.negotiations.events import (
    NegotiationAccepted,
    NegotiationClosed,
    NegotiationCompleted,
    NegotiationOpened,
    OfferCountered,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class NegotiationOpenedHandler(IEventHandler[NegotiationOpened]):
    def handle(self, event: NegotiationOpened) -> None:
        logger.info(
            "negotiation.event.opened",
            negotiation_id=str(event.aggregate_id),
            actor=event.actor,
            price=event.price,
        )


class OfferCounteredHandler(IEventHandler[OfferCountered]):
    def handle(self, event: OfferCountered) -> None:
        logger.info(
            "negotiation.event.countered",
            negotiation_id=str(event.aggregate_id),
            actor=event.actor,
            price=event.price,
            round_count=event.round_count,
        )


class NegotiationAcceptedHandler(IEventHandler[NegotiationAccepted]):
    def handle(self, event: NegotiationAccepted) -> None:
        logger.info(
            "negotiation.event.accepted",
            negotiation_id=str(event.aggregate_id),
            price=event.price,
        )


class NegotiationClosedHandler(IEventHandler[NegotiationClosed]):
    def handle(self, event: NegotiationClosed) -> None:
        logger.info(
            "negotiation.event.closed",
            negotiation_id=str(event.aggregate_id),
            status=event.status,
        )


class NegotiationCompletedHandler(IEventHandler[NegotiationCompleted]):
    def handle(self, event: NegotiationCompleted) -> None:
        logger.info(
            "negotiation.event.completed",
            negotiation_id=str(event.aggregate_id),
            order_id=event.order_id,
            order_number=event.order_number,
        )


negotiation_opened_handler = NegotiationOpenedHandler()
offer_countered_handler = OfferCounteredHandler()
negotiation_accepted_handler = NegotiationAcceptedHandler()
negotiation_closed_handler = NegotiationClosedHandler()
negotiation_completed_handler = NegotiationCompletedHandler()
