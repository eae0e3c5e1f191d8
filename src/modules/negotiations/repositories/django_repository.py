"""Django ORM implementation of the Negotiation repository.

This is the Price/Term Ledger.  Concurrency control is optimistic:
``append`` updates the cached thread row only if its ``last_sequence`` is
still the one the caller decided against, then inserts the event.  The
``(thread, sequence)`` unique constraint backs the conditional update, so
two writers can never both commit the same sequence number.  No row lock
is taken.

Domain events collected by the service are written to the transactional
outbox inside the same ``transaction.atomic()`` block.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.db.models import Count, F
from django.utils import timezone

from modules.core.outbox import write_outbox_events
from modules.negotiations.constants import (
    ACTIVE_STATUSES,
    OPEN_STATUSES,
    Actor,
    NegotiationStatus,
)
from modules.negotiations.exceptions import Conflict, ImmutableLedgerError
from modules.negotiations.machine import NegotiationState, fold
from modules.negotiations.models import LedgerEvent, NegotiationThread
from modules.negotiations.repositories.interfaces import INegotiationRepository
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "negotiations"

_ROLE_FIELDS = {
    Actor.CUSTOMER: "customer_id",
    Actor.SELLER: "seller_id",
}


class NegotiationDjangoRepository(INegotiationRepository):
    """Concrete Negotiation repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[NegotiationThread]:
        """Retrieve a thread with its parties and product.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                NegotiationThread.objects.select_related(
                    "customer", "seller", "product"
                )
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[NegotiationThread]":
        queryset = NegotiationThread.objects.select_related(
            "customer", "seller", "product"
        )
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: NegotiationThread) -> NegotiationThread:
        """Persist a thread and flush its domain events to the outbox."""
        is_new = entity._state.adding
        entity.save()

        events = entity.domain_events
        write_outbox_events(events, topic=OUTBOX_TOPIC)
        entity.clear_domain_events()

        logger.info(
            "negotiation.saved",
            negotiation_id=str(entity.id),
            is_new=is_new,
            event_count=len(events),
        )
        return entity

    def delete(self, id: str) -> bool:
        """Threads are part of the audit trail and are never deleted."""
        raise ImmutableLedgerError(f"Negotiation {id} cannot be deleted.")

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    @transaction.atomic
    def open(
        self, thread: NegotiationThread, event: LedgerEvent
    ) -> NegotiationThread:
        """Insert the thread and event #1 atomically."""
        if event.sequence != 1 or thread.last_sequence != 1:
            raise Conflict("A new negotiation must start at sequence 1.")
        self.save(thread)
        event.thread = thread
        event.save()
        logger.info(
            "negotiation.ledger_appended",
            negotiation_id=str(thread.id),
            sequence=1,
            kind=event.kind,
            actor=event.actor,
        )
        return thread

    @transaction.atomic
    def append(
        self,
        thread_id: UUID,
        expected_sequence: int,
        event: LedgerEvent,
        new_state: NegotiationState,
        *,
        order_ref: Optional[str] = None,
        domain_events: Iterable[DomainEvent] = (),
    ) -> LedgerEvent:
        log = logger.bind(
            negotiation_id=str(thread_id),
            sequence=expected_sequence,
            kind=event.kind,
            actor=event.actor,
        )
        if new_state.sequence != expected_sequence:
            raise Conflict(
                f"State is at sequence {new_state.sequence}, "
                f"append expected {expected_sequence}."
            )

        fields: Dict[str, Any] = {
            "status": new_state.status,
            "current_price": new_state.current_price,
            "round_count": new_state.round_count,
            "last_actor": new_state.last_actor,
            "expires_at": new_state.expires_at,
            "last_sequence": new_state.sequence,
            "updated_at": timezone.now(),
        }
        if order_ref is not None:
            fields["order_ref"] = order_ref

        updated = NegotiationThread.objects.filter(
            id=thread_id, last_sequence=expected_sequence - 1
        ).update(**fields)
        if not updated:
            log.warning("negotiation.append_conflict", reason="sequence_moved")
            raise Conflict(
                f"Negotiation {thread_id} moved past sequence {expected_sequence - 1}."
            )

        event.thread_id = thread_id
        event.sequence = expected_sequence
        try:
            with transaction.atomic():
                event.save()
        except IntegrityError as exc:
            log.warning("negotiation.append_conflict", reason="duplicate_sequence")
            raise Conflict(
                f"Sequence {expected_sequence} already exists for {thread_id}."
            ) from exc

        write_outbox_events(domain_events, topic=OUTBOX_TOPIC)
        log.info("negotiation.ledger_appended", status=new_state.status)
        return event

    def history(self, thread_id: UUID) -> List[LedgerEvent]:
        return list(
            LedgerEvent.objects.select_related("actor_account")
            .filter(thread_id=thread_id)
            .order_by("sequence")
        )

    def replay(self, thread_id: UUID) -> Optional[NegotiationState]:
        return fold(self.history(thread_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_active_for(
        self, account_id: UUID, role: str
    ) -> "models.QuerySet[NegotiationThread]":
        return self.list(
            {_ROLE_FIELDS[role]: account_id, "status__in": ACTIVE_STATUSES}
        )

    def find_active_for_product(
        self, customer_id: UUID, product_id: UUID, variant_id: Optional[UUID] = None
    ) -> Optional[NegotiationThread]:
        return (
            self.list(
                {
                    "customer_id": customer_id,
                    "product_id": product_id,
                    "variant_id": variant_id,
                    "status__in": ACTIVE_STATUSES,
                }
            )
            .order_by("-created_at")
            .first()
        )

    def list_expired_ids(self, now: datetime, limit: int) -> List[UUID]:
        return list(
            NegotiationThread.objects.filter(
                status__in=OPEN_STATUSES, expires_at__lt=now
            )
            .order_by("expires_at")
            .values_list("id", flat=True)[:limit]
        )

    def list_awaiting_conversion_ids(
        self, limit: int, max_attempts: Optional[int] = None
    ) -> List[UUID]:
        queryset = NegotiationThread.objects.filter(status=NegotiationStatus.ACCEPTED)
        if max_attempts is not None:
            queryset = queryset.filter(conversion_attempts__lt=max_attempts)
        return list(queryset.order_by("updated_at").values_list("id", flat=True)[:limit])

    def record_conversion_failure(self, thread_id: UUID) -> int:
        NegotiationThread.objects.filter(id=thread_id).update(
            conversion_attempts=F("conversion_attempts") + 1
        )
        return (
            NegotiationThread.objects.filter(id=thread_id)
            .values_list("conversion_attempts", flat=True)
            .first()
            or 0
        )

    def stats(self, account_id: UUID, role: str) -> Dict[str, int]:
        counts: Dict[str, int] = {value: 0 for value in NegotiationStatus.values}
        rows = (
            NegotiationThread.objects.filter(**{_ROLE_FIELDS[role]: account_id})
            .values("status")
            .annotate(count=Count("id"))
            .order_by()
        )
        for row in rows:
            counts[row["status"]] = row["count"]
        counts["total"] = sum(counts.values())
        return counts
