"""Negotiation state machine.

Pure decision logic, free of I/O: given the current state of a thread and
an incoming action, :func:`transition` returns either the next state or a
rejection with a machine-readable reason.  The same function is used to
validate live actions and to replay the ledger (:func:`fold`), so the
cached thread fields can never disagree with the event log.

Transition table (``last_actor`` is whoever made the offer on the table)::

    (none)            customer|seller  PROPOSE  -> PENDING          price > 0
    PENDING|COUNTER   other party      ACCEPT   -> ACCEPTED
    PENDING|COUNTER   other party      REJECT   -> REJECTED
    PENDING|COUNTER   other party      COUNTER  -> COUNTER_OFFERED  price > 0, rounds left
    PENDING|COUNTER   customer|seller  CANCEL   -> CANCELLED
    PENDING|COUNTER   system           EXPIRE   -> EXPIRED          at > expires_at
    ACCEPTED          system           COMPLETE -> COMPLETED
    terminal          anyone           anything -> rejected ("terminal")
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Union

from modules.negotiations.constants import (
    OPEN_STATUSES,
    PARTICIPANTS,
    PRICED_KINDS,
    TERMINAL_STATUSES,
    Actor,
    EventKind,
    NegotiationStatus,
    RejectionReason,
)
from modules.negotiations.exceptions import LedgerCorrupted

# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NegotiationState:
    """Everything the machine needs to know about a thread."""

    status: str
    current_price: Optional[Decimal] = None
    round_count: int = 0
    last_actor: Optional[str] = None
    expires_at: Optional[datetime] = None
    sequence: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


@dataclass(frozen=True)
class Action:
    """An attempted move.

    ``at`` is the moment the action is decided; ``expires_at`` is the
    response deadline a PROPOSE or COUNTER sets for the other party.
    """

    actor: str
    kind: str
    price: Optional[Decimal] = None
    at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class Transition:
    state: NegotiationState
    ok: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: str
    detail: str = ""
    ok: bool = False


TransitionResult = Union[Transition, Rejected]


class LedgerRecord(Protocol):
    """Shape of a persisted ledger event, as far as replay is concerned."""

    sequence: int
    actor: str
    kind: str
    price: Optional[Decimal]
    created_at: datetime
    expires_at: Optional[datetime]


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------


def transition(
    state: Optional[NegotiationState],
    action: Action,
    *,
    max_rounds: Optional[int] = None,
) -> TransitionResult:
    """Compute the state that *action* leads to, or why it is refused.

    ``state`` is ``None`` when no thread exists yet.  ``max_rounds`` is
    business policy; ``None`` disables the round limit (used on replay so a
    policy change never invalidates history).
    """
    if action.actor not in Actor.values or action.kind not in EventKind.values:
        return Rejected(
            RejectionReason.UNKNOWN_ACTION, f"{action.actor}/{action.kind}"
        )

    if state is None:
        return _open(action)

    if state.is_terminal:
        return Rejected(RejectionReason.TERMINAL, f"Negotiation is {state.status}.")

    if state.status == NegotiationStatus.ACCEPTED:
        return _complete(state, action)

    return _respond(state, action, max_rounds)


def _open(action: Action) -> TransitionResult:
    if action.kind != EventKind.PROPOSE:
        return Rejected(RejectionReason.NOT_OPEN, "Only PROPOSE can open a thread.")
    if action.actor not in PARTICIPANTS:
        return Rejected(RejectionReason.PARTICIPANT_ONLY)
    if not _is_positive(action.price):
        return Rejected(RejectionReason.PRICE_REQUIRED)
    return Transition(
        NegotiationState(
            status=NegotiationStatus.PENDING,
            current_price=action.price,
            round_count=0,
            last_actor=action.actor,
            expires_at=action.expires_at,
            sequence=1,
        )
    )


def _complete(state: NegotiationState, action: Action) -> TransitionResult:
    if action.kind != EventKind.COMPLETE:
        return Rejected(
            RejectionReason.AWAITING_CONVERSION,
            "Offer accepted; the order is being created.",
        )
    if action.actor != Actor.SYSTEM:
        return Rejected(RejectionReason.SYSTEM_ONLY)
    if action.price is not None:
        return Rejected(RejectionReason.PRICE_NOT_ALLOWED)
    return Transition(
        replace(
            state,
            status=NegotiationStatus.COMPLETED,
            expires_at=None,
            sequence=state.sequence + 1,
        )
    )


def _respond(
    state: NegotiationState, action: Action, max_rounds: Optional[int]
) -> TransitionResult:
    kind = action.kind

    if kind == EventKind.PROPOSE:
        return Rejected(RejectionReason.ALREADY_OPEN)
    if kind == EventKind.COMPLETE:
        return Rejected(RejectionReason.NOT_ACCEPTED)
    if kind not in PRICED_KINDS and action.price is not None:
        return Rejected(RejectionReason.PRICE_NOT_ALLOWED)

    if kind == EventKind.EXPIRE:
        if action.actor != Actor.SYSTEM:
            return Rejected(RejectionReason.SYSTEM_ONLY)
        if not _deadline_passed(state, action):
            return Rejected(RejectionReason.NOT_EXPIRED)
        return _close(state, NegotiationStatus.EXPIRED)

    if action.actor not in PARTICIPANTS:
        return Rejected(RejectionReason.PARTICIPANT_ONLY)

    if kind == EventKind.CANCEL:
        return _close(state, NegotiationStatus.CANCELLED)

    # ACCEPT / REJECT / COUNTER answer the offer on the table.
    if action.actor == state.last_actor:
        return Rejected(
            RejectionReason.NOT_YOUR_TURN,
            "You cannot respond to your own offer.",
        )
    if _deadline_passed(state, action):
        return Rejected(RejectionReason.OFFER_EXPIRED)

    if kind == EventKind.ACCEPT:
        return _close(state, NegotiationStatus.ACCEPTED)
    if kind == EventKind.REJECT:
        return _close(state, NegotiationStatus.REJECTED)

    if not _is_positive(action.price):
        return Rejected(RejectionReason.PRICE_REQUIRED)
    if max_rounds is not None and state.round_count >= max_rounds:
        return Rejected(
            RejectionReason.ROUND_LIMIT,
            f"At most {max_rounds} counter-offers are allowed.",
        )
    return Transition(
        NegotiationState(
            status=NegotiationStatus.COUNTER_OFFERED,
            current_price=action.price,
            round_count=state.round_count + 1,
            last_actor=action.actor,
            expires_at=action.expires_at,
            sequence=state.sequence + 1,
        )
    )


def _close(state: NegotiationState, status: str) -> Transition:
    return Transition(
        replace(state, status=status, expires_at=None, sequence=state.sequence + 1)
    )


def _is_positive(price: Optional[Decimal]) -> bool:
    return price is not None and price > 0


def _deadline_passed(state: NegotiationState, action: Action) -> bool:
    if state.expires_at is None or action.at is None:
        return False
    return action.at > state.expires_at


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------


def apply_event(
    state: Optional[NegotiationState],
    event: LedgerRecord,
    *,
    max_rounds: Optional[int] = None,
) -> NegotiationState:
    """Fold one persisted event into *state*.

    Raises:
        LedgerCorrupted: the event is not a legal step from *state*.
    """
    result = transition(
        state,
        Action(
            actor=event.actor,
            kind=event.kind,
            price=event.price,
            at=event.created_at,
            expires_at=event.expires_at,
        ),
        max_rounds=max_rounds,
    )
    if not result.ok:
        raise LedgerCorrupted(
            f"Event #{event.sequence} ({event.actor} {event.kind}) rejected on "
            f"replay: {result.reason}."
        )
    if result.state.sequence != event.sequence:
        raise LedgerCorrupted(
            f"Expected sequence {result.state.sequence}, found {event.sequence}."
        )
    return result.state


def fold(events: Iterable[LedgerRecord]) -> Optional[NegotiationState]:
    """Replay *events* (in sequence order) from the empty state."""
    state: Optional[NegotiationState] = None
    for event in events:
        state = apply_event(state, event)
    return state
