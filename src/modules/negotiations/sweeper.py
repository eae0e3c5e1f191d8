"""Expiration sweeper.

Turns open negotiations whose deadline has passed into EXPIRED by sending
a system EXPIRE through :meth:`NegotiationService.expire`, the same
optimistic-concurrency path a human response takes.  A thread that a
participant answered in the meantime simply loses the race and is
counted as skipped, so sweeping is idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

import structlog
from django.utils import timezone

from modules.negotiations.exceptions import (
    AdapterFailure,
    Conflict,
    InvalidTransition,
    StaleNegotiation,
)

if TYPE_CHECKING:
    from modules.negotiations.repositories.interfaces import INegotiationRepository
    from modules.negotiations.services import NegotiationService

logger = structlog.get_logger(__name__)

SWEEP_BATCH_SIZE = 500


@dataclass
class SweepResult:
    expired: List[UUID] = field(default_factory=list)
    completed: List[UUID] = field(default_factory=list)
    skipped: List[UUID] = field(default_factory=list)
    failed: List[UUID] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "expired": len(self.expired),
            "completed": len(self.completed),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }


class ExpirationSweeper:
    """Periodic job driving deadlines and stuck order conversions."""

    def __init__(
        self,
        service: NegotiationService,
        negotiation_repository: INegotiationRepository,
        batch_size: int = SWEEP_BATCH_SIZE,
    ) -> None:
        self._service = service
        self._repo = negotiation_repository
        self._batch_size = batch_size

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """Expire every open thread whose ``expires_at`` is before *now*."""
        now = now or timezone.now()
        result = SweepResult()

        for thread_id in self._repo.list_expired_ids(now, self._batch_size):
            try:
                self._service.expire(thread_id)
            except (StaleNegotiation, InvalidTransition, Conflict) as exc:
                logger.info(
                    "negotiation.sweep_skipped",
                    negotiation_id=str(thread_id),
                    reason=type(exc).__name__,
                )
                result.skipped.append(thread_id)
                continue
            result.expired.append(thread_id)

        logger.info(
            "negotiation.sweep_finished", now=now.isoformat(), **result.as_dict()
        )
        return result

    def retry_conversions(self) -> SweepResult:
        """Re-run order conversion for threads stuck in ACCEPTED.

        Threads that used up ``max_conversion_attempts`` are left for manual
        recovery through :meth:`NegotiationService.complete_conversion`.
        """
        result = SweepResult()
        thread_ids = self._repo.list_awaiting_conversion_ids(
            self._batch_size, max_attempts=self._service.max_conversion_attempts
        )

        for thread_id in thread_ids:
            try:
                self._service.complete_conversion(thread_id)
            except AdapterFailure:
                result.failed.append(thread_id)
                continue
            except (StaleNegotiation, InvalidTransition, Conflict) as exc:
                logger.info(
                    "negotiation.conversion_retry_skipped",
                    negotiation_id=str(thread_id),
                    reason=type(exc).__name__,
                )
                result.skipped.append(thread_id)
                continue
            result.completed.append(thread_id)

        logger.info("negotiation.conversion_retry_finished", **result.as_dict())
        return result
