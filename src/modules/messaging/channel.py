"""Messaging channel used by the negotiation engine.

``post_event`` is fire-and-forget from the caller's point of view: the
negotiation service catches and logs any failure, so a broken chat
backend never blocks a price transition.
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

import structlog

from modules.messaging.models import MessageType, NegotiationMessage

logger = structlog.get_logger(__name__)


class ChatMessagingChannel:
    """Stores negotiation summaries as chat messages."""

    def post_event(
        self,
        thread_id: UUID,
        actor_id: Optional[UUID],
        rendered_text: str,
    ) -> NegotiationMessage:
        message = NegotiationMessage.objects.create(
            negotiation_id=thread_id,
            sender_id=actor_id,
            message_type=(
                MessageType.NEGOTIATION if actor_id else MessageType.SYSTEM
            ),
            body=rendered_text,
        )
        logger.info(
            "messaging.negotiation_message_posted",
            negotiation_id=str(thread_id),
            message_id=str(message.id),
            system=actor_id is None,
        )
        return message

    def transcript(self, thread_id: UUID) -> List[NegotiationMessage]:
        return list(
            NegotiationMessage.objects.filter(negotiation_id=thread_id).order_by(
                "created_at"
            )
        )
