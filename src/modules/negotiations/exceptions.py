"""Negotiation domain exceptions.

Raised by the state machine, the ledger repository and the Service Layer.
The API layer (Views) catches these and translates them into HTTP
responses; nothing below the views swallows them.
"""

from __future__ import annotations

from typing import Optional


class NegotiationError(Exception):
    """Base class for every negotiation failure."""


class NegotiationNotFound(NegotiationError):
    """The requested negotiation thread does not exist."""


class AccountNotFound(NegotiationError):
    """A referenced account does not exist or cannot take this role."""


class InactiveAccount(NegotiationError):
    """The account is deactivated and cannot negotiate."""


class NotParticipant(NegotiationError):
    """The caller is neither the customer nor the seller of the thread."""


class SelfNegotiation(NegotiationError):
    """Customer and seller are the same account."""


class InvalidSubject(NegotiationError):
    """The product or custom specification being negotiated is unusable."""


class InvalidOffer(NegotiationError):
    """The opening offer violates the pricing or quantity policy."""


class InvalidTransition(NegotiationError):
    """The state / actor / action combination is not allowed.

    ``reason`` carries the state machine's machine-readable rejection code.
    """

    def __init__(self, reason: str, message: Optional[str] = None) -> None:
        self.reason = reason
        super().__init__(message or reason)


class StaleNegotiation(NegotiationError):
    """The negotiation already reached a terminal status (or its offer lapsed)."""


class Conflict(NegotiationError):
    """Another event was appended first; reload and decide again."""


class AdapterFailure(NegotiationError):
    """Order conversion failed; the thread stays ACCEPTED for a retry."""


class LedgerCorrupted(NegotiationError):
    """Replaying the ledger hit an event the state machine rejects."""


class ImmutableLedgerError(NegotiationError):
    """Attempt to update or delete a ledger record."""
