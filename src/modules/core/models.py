"""Base abstract models and cross-module infrastructure of the marketplace.

Provides:
- ``BaseModel``: UUIDv7 primary key + created_at / updated_at timestamps.
- ``SoftDeleteModel``: accounts, products and orders are hidden, never
  removed, so negotiation ledgers keep pointing at real rows.
- ``OutboxEvent``: Transactional Outbox for negotiation and order events.

Notes:
- Negotiation threads and ledger events are *not* soft-deletable; they
  extend ``BaseModel`` directly and refuse deletion altogether.
- ``objects`` returns every row.  Use ``.alive()`` to drop soft-deleted
  ones; repositories always do.
- ``save()`` adds ``updated_at`` to ``update_fields`` (Django skips
  ``auto_now`` fields otherwise).
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Soft Delete infrastructure
# ---------------------------------------------------------------------------


class SoftDeleteQuerySet(models.QuerySet):
    def alive(self) -> SoftDeleteQuerySet:
        """Rows whose ``deleted_at`` is empty."""
        return self.filter(deleted_at__isnull=True)

    def delete(self) -> tuple[int, dict[str, int]]:
        """Bulk soft-delete: stamps ``deleted_at`` on the live rows only."""
        now = timezone.now()
        count = self.alive().update(deleted_at=now, updated_at=now)
        return count, {self.model._meta.label: count}


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    """Unfiltered manager exposing ``.alive()``."""


class SoftDeleteModel(BaseModel):
    """Abstract model with soft-delete via a single ``deleted_at`` timestamp.

    ``delete()`` only stamps ``deleted_at``.  PROTECT foreign keys from
    negotiations and orders would block a physical delete anyway.
    """

    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        default=None,
        db_index=True,
    )

    objects = SoftDeleteManager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        """Soft-delete this instance (no-op if already deleted)."""
        if self.is_deleted:
            return 0, {}
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at", "updated_at"])
        return 1, {self._meta.label: 1}


# ---------------------------------------------------------------------------
# Transactional Outbox
# ---------------------------------------------------------------------------


class EventStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PUBLISHED = "PUBLISHED", "Published"
    FAILED = "FAILED", "Failed"


class OutboxEventQuerySet(models.QuerySet):
    def relayable(self, max_retries: int) -> OutboxEventQuerySet:
        """PENDING rows plus FAILED rows that still have retries left."""
        return self.filter(
            status__in=[EventStatus.PENDING, EventStatus.FAILED],
            retry_count__lt=max_retries,
        ).order_by("created_at", "id")


class OutboxEvent(BaseModel):
    """Domain event stored in the same transaction as the change behind it.

    Negotiation transitions (topic ``negotiations``) and order creation
    (topic ``orders``) write rows here; ``core.relay_outbox`` rebuilds them
    with ``DomainEvent.from_payload`` and publishes them on the event bus.
    A row that fails to publish is retried until ``retry_count`` reaches
    the relay's limit.
    """

    event_type = models.CharField(max_length=100)
    payload = models.JSONField()
    aggregate_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.PENDING,
    )
    processed_at = models.DateTimeField(null=True, blank=True, default=None)
    error_message = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01
    retry_count = models.PositiveIntegerField(default=0)

    objects = OutboxEventQuerySet.as_manager()

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["event_type"], name="outbox_event_type_idx"),
            models.Index(fields=["aggregate_id"], name="outbox_aggregate_id_idx"),
            models.Index(
                fields=["status", "created_at"],
                name="outbox_status_created_idx",
            ),
        ]

    def mark_as_published(self) -> None:
        self.status = EventStatus.PUBLISHED
        self.processed_at = timezone.now()
        self.error_message = None
        self.save(update_fields=["status", "processed_at", "error_message"])

    def mark_as_failed(self, error: str) -> None:
        self.status = EventStatus.FAILED
        self.error_message = error[:2000]
        self.retry_count += 1
        self.save(update_fields=["status", "error_message", "retry_count"])

    def __str__(self) -> str:
        return f"{self.topic}:{self.event_type} [{self.status}] ({self.aggregate_id})"
