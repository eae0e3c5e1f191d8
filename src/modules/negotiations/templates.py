"""Chat text for negotiation events."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from modules.negotiations.constants import Actor, EventKind

_ACTOR_LABELS = {
    Actor.CUSTOMER: "The customer",
    Actor.SELLER: "The seller",
    Actor.SYSTEM: "The marketplace",
}


def format_price(price: Optional[Decimal]) -> str:
    if price is None:
        return "-"
    return f"${price:,.2f}"


def render_event_message(
    kind: str,
    actor: str,
    title: str,
    price: Optional[Decimal] = None,
    note: str = "",
    order_number: str = "",
) -> str:
    """Render the chat line posted after a successful ledger append."""
    who = _ACTOR_LABELS.get(actor, actor)
    amount = format_price(price)

    if kind == EventKind.PROPOSE:
        text = f"{who} proposed {amount} for {title}."
    elif kind == EventKind.COUNTER:
        text = f"{who} countered with {amount} for {title}."
    elif kind == EventKind.ACCEPT:
        text = f"{who} accepted {amount} for {title}."
    elif kind == EventKind.REJECT:
        text = f"{who} rejected the offer for {title}."
    elif kind == EventKind.CANCEL:
        text = f"{who} cancelled the negotiation for {title}."
    elif kind == EventKind.EXPIRE:
        text = f"The offer for {title} expired without an answer."
    elif kind == EventKind.COMPLETE:
        text = f"Order {order_number} was created for {title}."
    else:
        text = f"{who}: {kind} on {title}."

    if note:
        text = f"{text} Note: {note}"
    return text
