"""Negotiation domain constants.

Status, actor and ledger-event vocabularies shared by the state machine,
the ORM models and the API layer.
"""

from django.db import models


class NegotiationStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    COUNTER_OFFERED = "COUNTER_OFFERED", "Counter offered"
    ACCEPTED = "ACCEPTED", "Accepted"
    REJECTED = "REJECTED", "Rejected"
    EXPIRED = "EXPIRED", "Expired"
    CANCELLED = "CANCELLED", "Cancelled"
    COMPLETED = "COMPLETED", "Completed"


class Actor(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    SELLER = "seller", "Seller"
    SYSTEM = "system", "System"


class EventKind(models.TextChoices):
    PROPOSE = "PROPOSE", "Propose"
    COUNTER = "COUNTER", "Counter"
    ACCEPT = "ACCEPT", "Accept"
    REJECT = "REJECT", "Reject"
    CANCEL = "CANCEL", "Cancel"
    EXPIRE = "EXPIRE", "Expire"
    COMPLETE = "COMPLETE", "Complete"


class RejectionReason(models.TextChoices):
    TERMINAL = "terminal", "Negotiation is closed"
    NOT_OPEN = "not_open", "No negotiation has been opened"
    ALREADY_OPEN = "already_open", "Negotiation is already open"
    NOT_YOUR_TURN = "not_your_turn", "Waiting for the other party"
    ROUND_LIMIT = "round_limit", "Counter-offer limit reached"
    PRICE_REQUIRED = "price_required", "A positive price is required"
    PRICE_NOT_ALLOWED = "price_not_allowed", "Price is only allowed on offers"
    NOT_EXPIRED = "not_expired", "Offer has not expired yet"
    OFFER_EXPIRED = "offer_expired", "Offer has expired"
    SYSTEM_ONLY = "system_only", "Only the system may do this"
    PARTICIPANT_ONLY = "participant_only", "Only a participant may do this"
    AWAITING_CONVERSION = "awaiting_conversion", "Accepted, awaiting order"
    NOT_ACCEPTED = "not_accepted", "Negotiation has not been accepted"
    UNKNOWN_ACTION = "unknown_action", "Unknown actor or action"


OPEN_STATUSES: frozenset[str] = frozenset(
    {NegotiationStatus.PENDING, NegotiationStatus.COUNTER_OFFERED}
)

ACTIVE_STATUSES: frozenset[str] = OPEN_STATUSES | {NegotiationStatus.ACCEPTED}

TERMINAL_STATUSES: frozenset[str] = frozenset(
    {
        NegotiationStatus.REJECTED,
        NegotiationStatus.EXPIRED,
        NegotiationStatus.CANCELLED,
        NegotiationStatus.COMPLETED,
    }
)

PARTICIPANTS: frozenset[str] = frozenset({Actor.CUSTOMER, Actor.SELLER})

PRICED_KINDS: frozenset[str] = frozenset({EventKind.PROPOSE, EventKind.COUNTER})

# Actions a participant may send through ``respond``.
RESPONSE_KINDS: frozenset[str] = frozenset(
    {EventKind.ACCEPT, EventKind.REJECT, EventKind.COUNTER, EventKind.CANCEL}
)

# Rejections that mean "this negotiation moved on without you".
STALE_REASONS: frozenset[str] = frozenset(
    {RejectionReason.TERMINAL, RejectionReason.OFFER_EXPIRED}
)

NOTE_MAX_LENGTH = 1000
MAX_WRITE_ATTEMPTS = 2
