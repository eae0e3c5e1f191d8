"""Unit tests for the core abstract models and the outbox queryset.

Covers:
- UUIDv7 primary keys and timestamps.
- Soft delete on instances and querysets; ``alive()`` hides the rows.
- ``OutboxEvent.objects.relayable`` skips published and exhausted rows.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.accounts.models import Account
from modules.catalog.models import Product
from modules.core.models import EventStatus, OutboxEvent

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# BaseModel / SoftDeleteModel
# ---------------------------------------------------------------------------


class TestSoftDelete:
    def test_id_is_uuid7(self, customer):
        assert customer.id.version == 7
        assert customer.created_at is not None

    def test_instance_delete_is_soft(self, customer):
        assert customer.delete() == (1, {"accounts.Account": 1})

        customer.refresh_from_db()
        assert customer.is_deleted
        assert not customer.can_negotiate
        assert not Account.objects.alive().filter(id=customer.id).exists()
        assert Account.objects.filter(id=customer.id).exists()

    def test_second_delete_is_noop(self, customer):
        customer.delete()
        assert customer.delete() == (0, {})

    def test_queryset_delete_is_soft(self, product, seller):
        Product.objects.create(
            seller=seller, sku="cup-02", name="Cup", price=Decimal("12.00")
        )

        count, _ = Product.objects.all().delete()

        assert count == 2
        assert Product.objects.alive().count() == 0
        assert Product.objects.count() == 2

    def test_sku_is_normalised(self, seller):
        product = Product.objects.create(
            seller=seller, sku=" plate-9 ", name="Plate", price=Decimal("30.00")
        )
        assert product.sku == "PLATE-9"


# ---------------------------------------------------------------------------
# Outbox
# ---------------------------------------------------------------------------


def _event(**overrides) -> OutboxEvent:
    defaults = {
        "event_type": "NegotiationOpened",
        "payload": {"aggregate_id": "0192f0a4-7c1e-7d11-9a43-2b1c5e6f7a80"},
        "aggregate_id": "0192f0a4-7c1e-7d11-9a43-2b1c5e6f7a80",
        "topic": "negotiations",
    }
    defaults.update(overrides)
    return OutboxEvent.objects.create(**defaults)


class TestOutboxRelayable:
    def test_relayable_rows(self):
        pending = _event()
        retryable = _event(status=EventStatus.FAILED, retry_count=2)
        _event(status=EventStatus.FAILED, retry_count=5)
        _event(status=EventStatus.PUBLISHED)

        rows = list(OutboxEvent.objects.relayable(max_retries=5))

        assert [row.id for row in rows] == [pending.id, retryable.id]

    def test_mark_as_failed_then_published(self):
        event = _event()

        event.mark_as_failed("bus down")
        event.refresh_from_db()
        assert event.status == EventStatus.FAILED
        assert event.retry_count == 1
        assert event.error_message == "bus down"

        event.mark_as_published()
        event.refresh_from_db()
        assert event.status == EventStatus.PUBLISHED
        assert event.processed_at is not None
        assert event.error_message is None

    def test_str_includes_topic(self):
        assert str(_event()).startswith("negotiations:NegotiationOpened")
