"""Account repository interface.

This is the identity / role lookup the negotiation engine depends on:
resolving an account id, confirming it is active and reading its role.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import Account


class IAccountRepository(IRepository["Account"]):
    """Repository contract for the Account aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Account]":
        """List accounts with optional filters."""

    @abstractmethod
    def get_by_user(self, user_id: Any) -> Optional[Account]:
        """Retrieve the account linked to a Django auth user."""
