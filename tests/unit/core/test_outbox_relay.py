"""Unit tests for the transactional outbox and its Celery relay.

Covers:
- ``write_outbox_events`` stores JSON-safe payloads as PENDING rows.
- ``relay_outbox`` rebuilds events, publishes them on the event bus and
  marks rows PUBLISHED.
- Unknown event types are marked FAILED and counted.
"""

from __future__ import annotations

import uuid
from unittest.mock import patch

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.core.outbox import write_outbox_events
from modules.core.tasks import relay_outbox
from modules.negotiations.events import OfferCountered

pytestmark = pytest.mark.unit


def _countered():
    return OfferCountered(
        aggregate_id=uuid.uuid4(), actor="seller", price="95.00", round_count=1
    )


class TestWriteOutboxEvents:
    def test_rows_are_pending_and_json_safe(self):
        event = _countered()

        (row,) = write_outbox_events([event], topic="negotiations")

        row.refresh_from_db()
        assert row.status == EventStatus.PENDING
        assert row.event_type == "OfferCountered"
        assert row.aggregate_id == str(event.aggregate_id)
        assert row.payload["price"] == "95.00"
        assert row.payload["event_id"] == str(event.event_id)

    def test_id_is_uuid7(self):
        (row,) = write_outbox_events([_countered()], topic="negotiations")
        assert row.id.version == 7


class TestRelayOutbox:
    def test_publishes_pending_events(self):
        event = _countered()
        write_outbox_events([event], topic="negotiations")

        with patch("modules.core.tasks.event_bus") as bus:
            result = relay_outbox()

        assert result == {"published": 1, "failed": 0}
        published = bus.publish.call_args.args[0]
        assert isinstance(published, OfferCountered)
        assert published.aggregate_id == event.aggregate_id
        assert published.round_count == 1
        assert OutboxEvent.objects.get().status == EventStatus.PUBLISHED

    def test_unknown_event_type_is_marked_failed(self):
        OutboxEvent.objects.create(
            event_type="SomethingElse",
            aggregate_id="abc",
            payload={"aggregate_id": str(uuid.uuid4())},
            topic="negotiations",
        )

        result = relay_outbox()

        assert result == {"published": 0, "failed": 1}
        row = OutboxEvent.objects.get()
        assert row.status == EventStatus.FAILED
        assert row.retry_count == 1

    def test_published_events_are_not_relayed_twice(self):
        write_outbox_events([_countered()], topic="negotiations")

        relay_outbox()
        result = relay_outbox()

        assert result == {"published": 0, "failed": 0}
