"""Unit tests for the negotiation state machine.

Covers:
- Opening a thread with PROPOSE.
- Every response from PENDING / COUNTER_OFFERED.
- Alternation, deadlines and the round limit.
- COMPLETE from ACCEPTED and rejection of everything on terminal states.
- Ledger replay (``apply_event`` / ``fold``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from modules.negotiations.constants import (
    TERMINAL_STATUSES,
    Actor,
    EventKind,
    NegotiationStatus,
    RejectionReason,
)
from modules.negotiations.exceptions import LedgerCorrupted
from modules.negotiations.machine import (
    Action,
    NegotiationState,
    apply_event,
    fold,
    transition,
)

pytestmark = pytest.mark.unit

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
DEADLINE = T0 + timedelta(hours=72)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _pending(**overrides) -> NegotiationState:
    defaults = {
        "status": NegotiationStatus.PENDING,
        "current_price": Decimal("80.00"),
        "round_count": 0,
        "last_actor": Actor.CUSTOMER,
        "expires_at": DEADLINE,
        "sequence": 1,
    }
    defaults.update(overrides)
    return NegotiationState(**defaults)


def _act(actor, kind, price=None, at=T0 + timedelta(hours=1), expires_at=None):
    return Action(actor=actor, kind=kind, price=price, at=at, expires_at=expires_at)


@dataclass
class _Record:
    sequence: int
    actor: str
    kind: str
    price: Optional[Decimal] = None
    created_at: datetime = T0
    expires_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Opening
# ---------------------------------------------------------------------------


class TestOpen:
    @pytest.mark.parametrize("actor", [Actor.CUSTOMER, Actor.SELLER])
    def test_propose_opens_pending_thread(self, actor):
        result = transition(
            None,
            _act(actor, EventKind.PROPOSE, Decimal("80.00"), at=T0, expires_at=DEADLINE),
        )

        assert result.ok
        assert result.state == NegotiationState(
            status=NegotiationStatus.PENDING,
            current_price=Decimal("80.00"),
            round_count=0,
            last_actor=actor,
            expires_at=DEADLINE,
            sequence=1,
        )

    def test_system_cannot_propose(self):
        result = transition(None, _act(Actor.SYSTEM, EventKind.PROPOSE, Decimal("1")))
        assert not result.ok
        assert result.reason == RejectionReason.PARTICIPANT_ONLY

    @pytest.mark.parametrize("price", [None, Decimal("0"), Decimal("-5")])
    def test_propose_requires_positive_price(self, price):
        result = transition(None, _act(Actor.CUSTOMER, EventKind.PROPOSE, price))
        assert not result.ok
        assert result.reason == RejectionReason.PRICE_REQUIRED

    @pytest.mark.parametrize(
        "kind", [EventKind.ACCEPT, EventKind.COUNTER, EventKind.CANCEL]
    )
    def test_only_propose_opens(self, kind):
        result = transition(None, _act(Actor.CUSTOMER, kind, Decimal("10")))
        assert not result.ok
        assert result.reason == RejectionReason.NOT_OPEN

    def test_unknown_kind_is_rejected(self):
        result = transition(_pending(), _act(Actor.SELLER, "HAGGLE"))
        assert not result.ok
        assert result.reason == RejectionReason.UNKNOWN_ACTION

    def test_unknown_actor_is_rejected(self):
        result = transition(_pending(), _act("broker", EventKind.ACCEPT))
        assert not result.ok
        assert result.reason == RejectionReason.UNKNOWN_ACTION


# ---------------------------------------------------------------------------
# Responses on an open thread
# ---------------------------------------------------------------------------


class TestRespond:
    @pytest.mark.parametrize(
        "status", [NegotiationStatus.PENDING, NegotiationStatus.COUNTER_OFFERED]
    )
    def test_other_party_accepts(self, status):
        result = transition(_pending(status=status), _act(Actor.SELLER, EventKind.ACCEPT))

        assert result.ok
        assert result.state.status == NegotiationStatus.ACCEPTED
        assert result.state.current_price == Decimal("80.00")
        assert result.state.expires_at is None
        assert result.state.sequence == 2

    def test_other_party_rejects(self):
        result = transition(_pending(), _act(Actor.SELLER, EventKind.REJECT))
        assert result.ok
        assert result.state.status == NegotiationStatus.REJECTED

    def test_counter_replaces_price_and_counts_round(self):
        new_deadline = T0 + timedelta(hours=80)
        result = transition(
            _pending(),
            _act(Actor.SELLER, EventKind.COUNTER, Decimal("95.00"), expires_at=new_deadline),
            max_rounds=3,
        )

        assert result.ok
        assert result.state == NegotiationState(
            status=NegotiationStatus.COUNTER_OFFERED,
            current_price=Decimal("95.00"),
            round_count=1,
            last_actor=Actor.SELLER,
            expires_at=new_deadline,
            sequence=2,
        )

    @pytest.mark.parametrize(
        "kind", [EventKind.ACCEPT, EventKind.REJECT, EventKind.COUNTER]
    )
    def test_cannot_answer_own_offer(self, kind):
        price = Decimal("70.00") if kind == EventKind.COUNTER else None
        result = transition(_pending(), _act(Actor.CUSTOMER, kind, price))
        assert not result.ok
        assert result.reason == RejectionReason.NOT_YOUR_TURN

    @pytest.mark.parametrize("actor", [Actor.CUSTOMER, Actor.SELLER])
    def test_either_party_may_cancel(self, actor):
        result = transition(_pending(), _act(actor, EventKind.CANCEL))
        assert result.ok
        assert result.state.status == NegotiationStatus.CANCELLED
        assert result.state.current_price == Decimal("80.00")

    def test_counter_requires_price(self):
        result = transition(_pending(), _act(Actor.SELLER, EventKind.COUNTER))
        assert not result.ok
        assert result.reason == RejectionReason.PRICE_REQUIRED

    @pytest.mark.parametrize("kind", [EventKind.ACCEPT, EventKind.REJECT, EventKind.CANCEL])
    def test_price_only_on_offers(self, kind):
        result = transition(_pending(), _act(Actor.SELLER, kind, Decimal("90")))
        assert not result.ok
        assert result.reason == RejectionReason.PRICE_NOT_ALLOWED

    def test_round_limit(self):
        state = _pending(
            status=NegotiationStatus.COUNTER_OFFERED,
            round_count=3,
            last_actor=Actor.SELLER,
        )
        result = transition(
            state, _act(Actor.CUSTOMER, EventKind.COUNTER, Decimal("85")), max_rounds=3
        )
        assert not result.ok
        assert result.reason == RejectionReason.ROUND_LIMIT

    def test_round_limit_disabled_with_none(self):
        state = _pending(
            status=NegotiationStatus.COUNTER_OFFERED,
            round_count=10,
            last_actor=Actor.SELLER,
        )
        result = transition(state, _act(Actor.CUSTOMER, EventKind.COUNTER, Decimal("85")))
        assert result.ok
        assert result.state.round_count == 11

    def test_accept_after_deadline_is_refused(self):
        late = DEADLINE + timedelta(seconds=1)
        result = transition(_pending(), _act(Actor.SELLER, EventKind.ACCEPT, at=late))
        assert not result.ok
        assert result.reason == RejectionReason.OFFER_EXPIRED

    def test_accept_exactly_at_deadline_is_allowed(self):
        result = transition(_pending(), _act(Actor.SELLER, EventKind.ACCEPT, at=DEADLINE))
        assert result.ok

    def test_propose_on_open_thread(self):
        result = transition(_pending(), _act(Actor.SELLER, EventKind.PROPOSE, Decimal("1")))
        assert not result.ok
        assert result.reason == RejectionReason.ALREADY_OPEN

    def test_complete_before_accept(self):
        result = transition(_pending(), _act(Actor.SYSTEM, EventKind.COMPLETE))
        assert not result.ok
        assert result.reason == RejectionReason.NOT_ACCEPTED

    def test_system_cannot_accept(self):
        result = transition(_pending(), _act(Actor.SYSTEM, EventKind.ACCEPT))
        assert not result.ok
        assert result.reason == RejectionReason.PARTICIPANT_ONLY


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


class TestExpire:
    def test_system_expires_after_deadline(self):
        result = transition(
            _pending(),
            _act(Actor.SYSTEM, EventKind.EXPIRE, at=DEADLINE + timedelta(minutes=1)),
        )
        assert result.ok
        assert result.state.status == NegotiationStatus.EXPIRED
        assert result.state.expires_at is None

    def test_expire_before_deadline_is_refused(self):
        result = transition(_pending(), _act(Actor.SYSTEM, EventKind.EXPIRE, at=DEADLINE))
        assert not result.ok
        assert result.reason == RejectionReason.NOT_EXPIRED

    def test_participant_cannot_expire(self):
        result = transition(
            _pending(),
            _act(Actor.SELLER, EventKind.EXPIRE, at=DEADLINE + timedelta(days=1)),
        )
        assert not result.ok
        assert result.reason == RejectionReason.SYSTEM_ONLY


# ---------------------------------------------------------------------------
# Accepted / terminal
# ---------------------------------------------------------------------------


class TestAcceptedAndTerminal:
    def test_system_completes_accepted_thread(self):
        accepted = _pending(status=NegotiationStatus.ACCEPTED, expires_at=None, sequence=2)
        result = transition(accepted, _act(Actor.SYSTEM, EventKind.COMPLETE))
        assert result.ok
        assert result.state.status == NegotiationStatus.COMPLETED
        assert result.state.sequence == 3
        assert result.state.current_price == Decimal("80.00")

    def test_participant_cannot_complete(self):
        accepted = _pending(status=NegotiationStatus.ACCEPTED, expires_at=None)
        result = transition(accepted, _act(Actor.SELLER, EventKind.COMPLETE))
        assert not result.ok
        assert result.reason == RejectionReason.SYSTEM_ONLY

    @pytest.mark.parametrize("kind", [EventKind.CANCEL, EventKind.COUNTER, EventKind.REJECT])
    def test_accepted_thread_awaits_conversion(self, kind):
        accepted = _pending(status=NegotiationStatus.ACCEPTED, expires_at=None)
        price = Decimal("10") if kind == EventKind.COUNTER else None
        result = transition(accepted, _act(Actor.SELLER, kind, price))
        assert not result.ok
        assert result.reason == RejectionReason.AWAITING_CONVERSION

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
    @pytest.mark.parametrize(
        "actor,kind",
        [
            (Actor.SELLER, EventKind.ACCEPT),
            (Actor.CUSTOMER, EventKind.CANCEL),
            (Actor.SYSTEM, EventKind.EXPIRE),
            (Actor.SYSTEM, EventKind.COMPLETE),
        ],
    )
    def test_terminal_states_reject_everything(self, status, actor, kind):
        state = _pending(status=status, expires_at=None)
        result = transition(state, _act(actor, kind, at=DEADLINE + timedelta(days=3)))
        assert not result.ok
        assert result.reason == RejectionReason.TERMINAL


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------


class TestReplay:
    def test_fold_rebuilds_state(self):
        events = [
            _Record(1, Actor.CUSTOMER, EventKind.PROPOSE, Decimal("80.00"), T0, DEADLINE),
            _Record(
                2,
                Actor.SELLER,
                EventKind.COUNTER,
                Decimal("95.00"),
                T0 + timedelta(hours=2),
                T0 + timedelta(hours=74),
            ),
            _Record(3, Actor.CUSTOMER, EventKind.ACCEPT, None, T0 + timedelta(hours=3)),
            _Record(4, Actor.SYSTEM, EventKind.COMPLETE, None, T0 + timedelta(hours=3)),
        ]

        state = fold(events)

        assert state.status == NegotiationStatus.COMPLETED
        assert state.current_price == Decimal("95.00")
        assert state.round_count == 1
        assert state.last_actor == Actor.SELLER
        assert state.sequence == 4

    def test_fold_of_nothing_is_none(self):
        assert fold([]) is None

    def test_fold_ignores_round_limit(self):
        events = [_Record(1, Actor.CUSTOMER, EventKind.PROPOSE, Decimal("50"), T0, DEADLINE)]
        actors = [Actor.SELLER, Actor.CUSTOMER]
        for seq in range(2, 9):
            events.append(
                _Record(
                    seq,
                    actors[seq % 2],
                    EventKind.COUNTER,
                    Decimal(50 + seq),
                    T0 + timedelta(minutes=seq),
                    DEADLINE,
                )
            )

        assert fold(events).round_count == 7

    def test_illegal_event_corrupts_ledger(self):
        state = _pending()
        with pytest.raises(LedgerCorrupted):
            apply_event(state, _Record(2, Actor.CUSTOMER, EventKind.ACCEPT))

    def test_sequence_gap_corrupts_ledger(self):
        state = _pending()
        with pytest.raises(LedgerCorrupted):
            apply_event(state, _Record(5, Actor.SELLER, EventKind.ACCEPT, None, T0))


# ---------------------------------------------------------------------------
# Full transition table
# ---------------------------------------------------------------------------

C, S, X = Actor.CUSTOMER, Actor.SELLER, Actor.SYSTEM
R = RejectionReason

# Outcome of (actor, kind) on a thread whose offer was made by the customer.
_ON_OPEN_THREAD = {
    (C, EventKind.PROPOSE): R.ALREADY_OPEN,
    (C, EventKind.COUNTER): R.NOT_YOUR_TURN,
    (C, EventKind.ACCEPT): R.NOT_YOUR_TURN,
    (C, EventKind.REJECT): R.NOT_YOUR_TURN,
    (C, EventKind.CANCEL): NegotiationStatus.CANCELLED,
    (C, EventKind.EXPIRE): R.SYSTEM_ONLY,
    (C, EventKind.COMPLETE): R.NOT_ACCEPTED,
    (S, EventKind.PROPOSE): R.ALREADY_OPEN,
    (S, EventKind.COUNTER): NegotiationStatus.COUNTER_OFFERED,
    (S, EventKind.ACCEPT): NegotiationStatus.ACCEPTED,
    (S, EventKind.REJECT): NegotiationStatus.REJECTED,
    (S, EventKind.CANCEL): NegotiationStatus.CANCELLED,
    (S, EventKind.EXPIRE): R.SYSTEM_ONLY,
    (S, EventKind.COMPLETE): R.NOT_ACCEPTED,
    (X, EventKind.PROPOSE): R.ALREADY_OPEN,
    (X, EventKind.COUNTER): R.PARTICIPANT_ONLY,
    (X, EventKind.ACCEPT): R.PARTICIPANT_ONLY,
    (X, EventKind.REJECT): R.PARTICIPANT_ONLY,
    (X, EventKind.CANCEL): R.PARTICIPANT_ONLY,
    (X, EventKind.EXPIRE): NegotiationStatus.EXPIRED,
    (X, EventKind.COMPLETE): R.NOT_ACCEPTED,
}

_WITHOUT_THREAD = {
    (C, EventKind.PROPOSE): NegotiationStatus.PENDING,
    (S, EventKind.PROPOSE): NegotiationStatus.PENDING,
    (X, EventKind.PROPOSE): R.PARTICIPANT_ONLY,
}

_ON_ACCEPTED_THREAD = {
    (C, EventKind.COMPLETE): R.SYSTEM_ONLY,
    (S, EventKind.COMPLETE): R.SYSTEM_ONLY,
    (X, EventKind.COMPLETE): NegotiationStatus.COMPLETED,
}

EXPECTED = {}
for _actor in Actor.values:
    for _kind in EventKind.values:
        _cell = (_actor, _kind)
        EXPECTED[(None, *_cell)] = _WITHOUT_THREAD.get(_cell, R.NOT_OPEN)
        EXPECTED[(NegotiationStatus.PENDING, *_cell)] = _ON_OPEN_THREAD[_cell]
        EXPECTED[(NegotiationStatus.COUNTER_OFFERED, *_cell)] = _ON_OPEN_THREAD[_cell]
        EXPECTED[(NegotiationStatus.ACCEPTED, *_cell)] = _ON_ACCEPTED_THREAD.get(
            _cell, R.AWAITING_CONVERSION
        )
        for _status in TERMINAL_STATUSES:
            EXPECTED[(_status, *_cell)] = R.TERMINAL


def _table_action(actor, kind):
    price = Decimal("90.00") if kind in (EventKind.PROPOSE, EventKind.COUNTER) else None
    at = T0 + timedelta(hours=1)
    if kind == EventKind.EXPIRE:
        at = DEADLINE + timedelta(minutes=1)
    return _act(actor, kind, price, at=at, expires_at=DEADLINE + timedelta(hours=72))


class TestTransitionTable:
    def test_table_covers_every_cell(self):
        statuses = [None, *NegotiationStatus.values]
        assert len(EXPECTED) == len(statuses) * len(Actor.values) * len(EventKind.values)

    @pytest.mark.parametrize("status", [None, *NegotiationStatus.values])
    @pytest.mark.parametrize("actor", Actor.values)
    @pytest.mark.parametrize("kind", EventKind.values)
    def test_cell(self, status, actor, kind):
        state = None if status is None else _pending(status=status)
        expected = EXPECTED[(status, actor, kind)]

        result = transition(state, _table_action(actor, kind), max_rounds=3)

        if expected in NegotiationStatus.values:
            assert result.ok, getattr(result, "reason", None)
            assert result.state.status == expected
        else:
            assert not result.ok
            assert result.reason == expected
