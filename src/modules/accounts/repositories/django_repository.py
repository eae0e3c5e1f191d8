"""Django ORM implementation of the Account repository.

Follows the Null Object pattern: look-ups return ``None`` instead of
raising, the Service Layer decides how to translate a missing account.
Soft-deleted accounts are never returned.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.accounts.models import Account
from modules.accounts.repositories.interfaces import IAccountRepository

logger = structlog.get_logger(__name__)


class AccountDjangoRepository(IAccountRepository):
    """Concrete Account repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Account]:
        """Retrieve a live account by primary key.

        Returns ``None`` for non-existent, soft-deleted or malformed IDs.
        """
        try:
            return Account.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Account]":
        queryset = Account.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Account) -> Account:
        is_new = entity._state.adding
        entity.save()
        logger.info("account.saved", account_id=str(entity.id), is_new=is_new)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        account = self.get_by_id(id)
        if not account:
            return False
        account.delete()
        logger.info("account.soft_deleted", account_id=str(id))
        return True

    def get_by_user(self, user_id: Any) -> Optional[Account]:
        return Account.objects.alive().filter(user_id=user_id).first()
