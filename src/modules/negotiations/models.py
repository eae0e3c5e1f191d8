"""Negotiation thread and ledger models.

Business rules implemented:
- RN-NEG-001: The ledger is append-only; ``LedgerEvent`` rows are never
  updated or deleted.
- RN-NEG-002: ``(thread, sequence)`` is unique; it is the optimistic
  concurrency guard for every append.
- RN-NEG-003: ``NegotiationThread`` status / price / round fields are a
  cache of the ledger fold, written in the same transaction as the event.
- RN-NEG-004: ``order_ref`` is set if and only if the thread is COMPLETED.
- RN-NEG-005: Customer and seller must be different accounts.
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

import uuid6
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.negotiations.constants import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Actor,
    EventKind,
    NegotiationStatus,
)
from modules.negotiations.exceptions import ImmutableLedgerError
from modules.negotiations.machine import NegotiationState
from modules.negotiations.ports import SubjectRef
from shared.domain.events import DomainEventMixin


class NegotiationThread(DomainEventMixin, BaseModel):
    """One customer/seller negotiation over a product or a custom piece.

    The subject is either a catalog ``product`` or a free-form
    ``specification`` for a bespoke item; ``title`` is always set so the
    thread can be shown without joining the catalog.
    """

    customer = models.ForeignKey(
        "accounts.Account",
        on_delete=models.PROTECT,
        related_name="negotiations_as_customer",
    )
    seller = models.ForeignKey(
        "accounts.Account",
        on_delete=models.PROTECT,
        related_name="negotiations_as_seller",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="negotiations",
    )
    variant = models.ForeignKey(
        "catalog.ProductVariant",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="negotiations",
    )
    specification = models.TextField(blank=True, default="")
    title = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    list_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )

    # Cached projection of the ledger.
    status = models.CharField(
        max_length=20,
        choices=NegotiationStatus.choices,
        default=NegotiationStatus.PENDING,
    )
    current_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    round_count = models.PositiveIntegerField(default=0)
    last_actor = models.CharField(  # noqa: DJ01
        max_length=10,
        choices=Actor.choices,
        null=True,
        blank=True,
    )
    last_sequence = models.PositiveIntegerField(default=0)
    expires_at = models.DateTimeField(null=True, blank=True, default=None)
    order_ref = models.CharField(  # noqa: DJ01
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        default=None,
    )
    conversion_attempts = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "negotiation_thread"
        ordering = ["-updated_at"]
        indexes = [
            models.Index(
                fields=["customer", "status"], name="negthread_customer_status_idx"
            ),
            models.Index(
                fields=["seller", "status"], name="negthread_seller_status_idx"
            ),
            models.Index(
                fields=["status", "expires_at"], name="negthread_status_expires_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(customer=models.F("seller")),
                name="negthread_distinct_parties",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="negthread_quantity_positive",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(
                        status=NegotiationStatus.COMPLETED, order_ref__isnull=False
                    )
                    | (
                        ~models.Q(status=NegotiationStatus.COMPLETED)
                        & models.Q(order_ref__isnull=True)
                    )
                ),
                name="negthread_completed_iff_order_ref",
            ),
        ]

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def state(self) -> NegotiationState:
        """The cached fields as a state machine value."""
        return NegotiationState(
            status=self.status,
            current_price=self.current_price,
            round_count=self.round_count,
            last_actor=self.last_actor,
            expires_at=self.expires_at,
            sequence=self.last_sequence,
        )

    def apply_state(self, state: NegotiationState) -> None:
        """Copy a computed state onto the cached fields (no save)."""
        self.status = state.status
        self.current_price = state.current_price
        self.round_count = state.round_count
        self.last_actor = state.last_actor
        self.expires_at = state.expires_at
        self.last_sequence = state.sequence

    def role_of(self, account_id: Any) -> Optional[str]:
        """Return ``customer`` / ``seller`` for a participant, else ``None``."""
        if account_id is None:
            return None
        key = str(account_id)
        if key == str(self.customer_id):
            return Actor.CUSTOMER
        if key == str(self.seller_id):
            return Actor.SELLER
        return None

    def account_for(self, role: str) -> Optional[UUID]:
        if role == Actor.CUSTOMER:
            return self.customer_id
        if role == Actor.SELLER:
            return self.seller_id
        return None

    @property
    def subject_ref(self) -> SubjectRef:
        return SubjectRef(
            product_id=self.product_id,
            variant_id=self.variant_id,
            title=self.title,
            specification=self.specification,
        )

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.title} [{self.status}] #{self.last_sequence}"


class LedgerEvent(models.Model):
    """One immutable, successfully applied action in a negotiation.

    ``created_at`` is the moment the action was decided (the state machine
    compares it against deadlines on replay), so it is set by the caller
    instead of ``auto_now_add``.  ``expires_at`` is the response deadline a
    PROPOSE or COUNTER gives the other party.
    """

    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    thread = models.ForeignKey(
        NegotiationThread,
        on_delete=models.PROTECT,
        related_name="ledger_events",
    )
    sequence = models.PositiveIntegerField()
    actor = models.CharField(max_length=10, choices=Actor.choices)
    kind = models.CharField(max_length=10, choices=EventKind.choices)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    note = models.TextField(blank=True, default="")
    expires_at = models.DateTimeField(null=True, blank=True, default=None)
    actor_account = models.ForeignKey(
        "accounts.Account",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "negotiation_ledger_event"
        ordering = ["thread", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["thread", "sequence"],
                name="ledger_thread_sequence_uniq",
            ),
            models.CheckConstraint(
                condition=models.Q(sequence__gte=1),
                name="ledger_sequence_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(price__isnull=True) | models.Q(price__gt=0),
                name="ledger_price_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # Immutability
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ImmutableLedgerError(
                f"Ledger event {self.thread_id}#{self.sequence} is immutable."
            )
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ImmutableLedgerError("Ledger events cannot be deleted.")

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        price = f" {self.price}" if self.price is not None else ""
        return f"#{self.sequence} {self.actor} {self.kind}{price}"
