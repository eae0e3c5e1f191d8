"""Chat messages attached to negotiation threads.

Only structured negotiation messages live here; free-text chat is handled
elsewhere.  Rows are append-only: the transcript a participant sees must
match what was posted.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel


class MessageType(models.TextChoices):
    NEGOTIATION = "NEGOTIATION", "Negotiation"
    SYSTEM = "SYSTEM", "System"


class NegotiationMessage(BaseModel):
    """A chat-visible summary of one negotiation event.

    ``sender`` is ``None`` for messages posted by the system (expiry,
    order creation).
    """

    negotiation_id = models.UUIDField(db_index=True)
    sender = models.ForeignKey(
        "accounts.Account",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="negotiation_messages",
    )
    message_type = models.CharField(
        max_length=20,
        choices=MessageType.choices,
        default=MessageType.NEGOTIATION,
    )
    body = models.TextField()
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = "negotiation_messages"
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["negotiation_id", "created_at"],
                name="negmsg_thread_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"[{self.message_type}] {self.body[:40]}"
