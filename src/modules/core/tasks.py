"""Background tasks of the core module.

``relay_outbox`` drains the transactional outbox: every ``PENDING`` event is
rebuilt into its ``DomainEvent`` class and published on the in-process
event bus.  Events that fail are marked ``FAILED`` and retried on the next
run until ``OUTBOX_MAX_RETRIES`` is reached.
"""

from __future__ import annotations

import structlog
from celery import shared_task
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

OUTBOX_BATCH_SIZE = 100
OUTBOX_MAX_RETRIES = 5


@shared_task(name="core.relay_outbox")
def relay_outbox(batch_size: int = OUTBOX_BATCH_SIZE) -> dict:
    """Publish pending outbox events in creation order."""
    published = 0
    failed = 0

    with transaction.atomic():
        events = list(
            OutboxEvent.objects.relayable(OUTBOX_MAX_RETRIES)
            .select_for_update(skip_locked=True)[:batch_size]
        )
        for outbox_event in events:
            try:
                event = DomainEvent.from_payload(
                    outbox_event.event_type, outbox_event.payload
                )
                event_bus.publish(event)
            except Exception as exc:
                outbox_event.mark_as_failed(str(exc))
                failed += 1
                logger.exception(
                    "outbox.relay_failed",
                    outbox_id=str(outbox_event.id),
                    event_type=outbox_event.event_type,
                )
                continue
            outbox_event.mark_as_published()
            published += 1

    if published or failed:
        logger.info("outbox.relayed", published=published, failed=failed)
    return {"published": published, "failed": failed}
