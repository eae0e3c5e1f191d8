"""Negotiation repositories package."""

from modules.negotiations.repositories.django_repository import (
    NegotiationDjangoRepository,
)
from modules.negotiations.repositories.interfaces import INegotiationRepository

__all__ = ["INegotiationRepository", "NegotiationDjangoRepository"]
