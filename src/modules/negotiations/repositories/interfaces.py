"""Negotiation repository interface.

Extends ``IRepository[NegotiationThread]`` with the Price/Term Ledger
contract: opening a thread with its first event, appending under
optimistic concurrency and replaying the event log.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional
from uuid import UUID

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.negotiations.machine import NegotiationState
    from modules.negotiations.models import LedgerEvent, NegotiationThread
    from shared.domain.events import DomainEvent


class INegotiationRepository(IRepository["NegotiationThread"]):
    """Repository contract for the NegotiationThread aggregate and its ledger."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[NegotiationThread]":
        """List threads with optional filters."""

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    @abstractmethod
    def open(
        self, thread: NegotiationThread, event: LedgerEvent
    ) -> NegotiationThread:
        """Persist a new thread together with its first (PROPOSE) event."""

    @abstractmethod
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
        """Append *event* as number *expected_sequence* of the thread.

        The cached thread fields are updated to *new_state* in the same
        transaction.

        Raises:
            Conflict: another event already took that sequence number.
        """

    @abstractmethod
    def history(self, thread_id: UUID) -> List[LedgerEvent]:
        """All events of the thread in sequence order."""

    @abstractmethod
    def replay(self, thread_id: UUID) -> Optional[NegotiationState]:
        """Fold the ledger through the state machine."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    def list_active_for(
        self, account_id: UUID, role: str
    ) -> "models.QuerySet[NegotiationThread]":
        """Active threads where the account plays *role*."""

    @abstractmethod
    def find_active_for_product(
        self, customer_id: UUID, product_id: UUID, variant_id: Optional[UUID] = None
    ) -> Optional[NegotiationThread]:
        """The customer's active thread on a product (and variant), if any.

        A thread on the bare product and one on a variant are different
        subjects.
        """

    @abstractmethod
    def list_expired_ids(self, now: datetime, limit: int) -> List[UUID]:
        """Open threads whose deadline lies before *now*."""

    @abstractmethod
    def list_awaiting_conversion_ids(
        self, limit: int, max_attempts: Optional[int] = None
    ) -> List[UUID]:
        """Accepted threads still waiting for their order.

        Threads whose conversion already failed *max_attempts* times are left
        out.
        """

    @abstractmethod
    def record_conversion_failure(self, thread_id: UUID) -> int:
        """Count a failed order conversion; returns the attempts so far."""

    @abstractmethod
    def stats(self, account_id: UUID, role: str) -> Dict[str, int]:
        """Thread counts per status for the account in *role*."""
