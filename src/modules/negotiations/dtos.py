"""Negotiation DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are
the contracts between the API layer (DRF Serializers) and the Service
layer.  DTOs are immutable (``frozen=True``).

- ``CreateNegotiationDTO``: customer opens a negotiation.
- ``InviteCustomerDTO``: seller invites a customer on a listed product.
- ``RespondDTO``: accept / reject / counter / cancel on an open thread.
- ``LedgerEventDTO`` / ``NegotiationOutputDTO``: read models.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.negotiations.constants import (
    NOTE_MAX_LENGTH,
    RESPONSE_KINDS,
    EventKind,
)

if TYPE_CHECKING:
    from modules.negotiations.models import LedgerEvent, NegotiationThread


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateNegotiationDTO(BaseModel):
    """Immutable DTO for a customer's opening proposal.

    Validates:
    - ``opening_price`` must be positive.
    - Either ``product_id`` or a non-blank ``specification`` is given.
    - ``variant_id`` only comes with a ``product_id``.
    - ``expires_in_days`` (optional) lies between 1 and 7.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: UUID
    seller_id: UUID
    product_id: Optional[UUID] = None
    variant_id: Optional[UUID] = None
    specification: str = ""
    title: str = ""
    quantity: int = 1
    opening_price: Decimal
    note: str = Field(default="", max_length=NOTE_MAX_LENGTH)
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=7)

    @field_validator("opening_price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Opening price must be greater than zero.")
        return v

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("specification", "title")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def subject_required(self):
        """A negotiation needs a catalog product or a custom specification."""
        if self.product_id is None and not self.specification:
            raise ValueError("Either product_id or specification is required.")
        if self.variant_id is not None and self.product_id is None:
            raise ValueError("variant_id requires product_id.")
        return self


class InviteCustomerDTO(BaseModel):
    """Immutable DTO for a seller-initiated offer on a listed product."""

    model_config = ConfigDict(frozen=True)

    seller_id: UUID
    customer_id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: int = 1
    price: Decimal
    note: str = Field(default="", max_length=NOTE_MAX_LENGTH)
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=7)

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class RespondDTO(BaseModel):
    """Immutable DTO for a participant's response.

    ``expected_sequence`` is the sequence number the client believes comes
    next; when given, a stale value is refused instead of being applied to
    a thread that has moved on.
    """

    model_config = ConfigDict(frozen=True)

    thread_id: UUID
    actor_id: UUID
    action: str
    price: Optional[Decimal] = None
    note: str = Field(default="", max_length=NOTE_MAX_LENGTH)
    expected_sequence: Optional[int] = Field(default=None, ge=1)

    @field_validator("action")
    @classmethod
    def action_must_be_response(cls, v: str) -> str:
        value = v.strip().upper()
        if value not in RESPONSE_KINDS:
            raise ValueError(
                f"Action must be one of {', '.join(sorted(RESPONSE_KINDS))}."
            )
        return value

    @model_validator(mode="after")
    def price_only_on_counter(self):
        if self.action == EventKind.COUNTER and self.price is None:
            raise ValueError("A counter-offer requires a price.")
        if self.action != EventKind.COUNTER and self.price is not None:
            raise ValueError("Only a counter-offer carries a price.")
        return self


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class LedgerEventDTO(BaseModel):
    """Immutable DTO for one transcript entry."""

    model_config = ConfigDict(frozen=True)

    sequence: int
    actor: str
    kind: str
    price: Optional[Decimal]
    note: str
    created_at: datetime

    @classmethod
    def from_entity(cls, event: LedgerEvent) -> LedgerEventDTO:
        return cls(
            sequence=event.sequence,
            actor=event.actor,
            kind=event.kind,
            price=event.price,
            note=event.note,
            created_at=event.created_at,
        )


class NegotiationOutputDTO(BaseModel):
    """Immutable DTO for negotiation API responses."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    customer_id: UUID
    seller_id: UUID
    product_id: Optional[UUID]
    variant_id: Optional[UUID] = None
    title: str
    quantity: int
    status: str
    current_price: Optional[Decimal]
    round_count: int
    last_actor: Optional[str]
    sequence: int
    expires_at: Optional[datetime]
    order_ref: Optional[str]
    history: List[LedgerEventDTO] = []

    @classmethod
    def from_entity(
        cls, thread: NegotiationThread, history: Optional[List[LedgerEvent]] = None
    ) -> NegotiationOutputDTO:
        return cls(
            id=thread.id,
            customer_id=thread.customer_id,
            seller_id=thread.seller_id,
            product_id=thread.product_id,
            variant_id=thread.variant_id,
            title=thread.title,
            quantity=thread.quantity,
            status=thread.status,
            current_price=thread.current_price,
            round_count=thread.round_count,
            last_actor=thread.last_actor,
            sequence=thread.last_sequence,
            expires_at=thread.expires_at,
            order_ref=thread.order_ref,
            history=[LedgerEventDTO.from_entity(e) for e in history or []],
        )
