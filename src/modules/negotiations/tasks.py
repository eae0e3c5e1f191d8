"""Celery tasks of the negotiations module (scheduled by Celery beat)."""

from __future__ import annotations

import structlog
from celery import shared_task

from modules.negotiations.repositories import NegotiationDjangoRepository
from modules.negotiations.services import default_negotiation_service
from modules.negotiations.sweeper import ExpirationSweeper

logger = structlog.get_logger(__name__)


def build_sweeper() -> ExpirationSweeper:
    return ExpirationSweeper(
        service=default_negotiation_service(),
        negotiation_repository=NegotiationDjangoRepository(),
    )


@shared_task(name="negotiations.expire_stale")
def expire_stale() -> dict:
    """Expire negotiations whose response deadline has passed."""
    return build_sweeper().sweep().as_dict()


@shared_task(name="negotiations.retry_conversions")
def retry_conversions() -> dict:
    """Retry order creation for negotiations stuck in ACCEPTED."""
    return build_sweeper().retry_conversions().as_dict()
