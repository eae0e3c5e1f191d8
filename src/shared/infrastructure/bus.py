"""In-process event bus used by the outbox relay.

Handlers run synchronously in subscription order.  A handler that raises
stops delivery of that event; the relay marks the outbox row FAILED and
delivers it again on a later run, so handlers must tolerate replays.
"""

from __future__ import annotations

from typing import Dict, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        """Register ``handler`` once per event class (``ready()`` may run twice)."""
        registered = self._handlers.setdefault(event_class, [])
        if handler not in registered:
            registered.append(handler)

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[IEventHandler]:
        return list(self._handlers.get(event_class, []))

    def publish(self, event: DomainEvent) -> None:
        handlers = self._handlers.get(type(event), [])
        if not handlers:
            logger.debug(
                "event_bus.no_handlers",
                event_name=event.event_name,
                aggregate_id=str(event.aggregate_id),
            )
            return
        for handler in handlers:
            handler.handle(event)
        logger.debug(
            "event_bus.dispatched",
            event_name=event.event_name,
            aggregate_id=str(event.aggregate_id),
            handlers=len(handlers),
        )


event_bus = InMemoryEventBus()
