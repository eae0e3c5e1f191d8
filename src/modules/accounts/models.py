"""Marketplace account model.

Business rules implemented:
- RN-ACC-001: Username and e-mail must be unique in the system.
- RN-ACC-002: Only ``ARTISAN`` accounts may sell (receive negotiations).
- RN-ACC-003: Inactive accounts cannot negotiate (enforced at service layer).
- RN-ACC-004: Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
- RN-ACC-005: E-mail masked in ``__str__`` and logs.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class AccountRole(models.TextChoices):
    CUSTOMER = "CUSTOMER", "Customer"
    ARTISAN = "ARTISAN", "Artisan"
    ADMIN = "ADMIN", "Admin"


class Account(SoftDeleteModel):
    """Marketplace participant (buyer, artisan or administrator).

    ``user`` links the account to the Django auth user that authenticates
    API requests.  It is nullable so accounts can be provisioned before a
    login exists.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="account",
    )
    username = models.CharField(max_length=64, unique=True)
    display_name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(max_length=254, unique=True)
    role = models.CharField(
        max_length=20,
        choices=AccountRole.choices,
        default=AccountRole.CUSTOMER,
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "accounts"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["role"], name="accounts_role_idx"),
            models.Index(fields=["is_active"], name="accounts_active_idx"),
        ]

    @property
    def is_artisan(self) -> bool:
        return self.role == AccountRole.ARTISAN

    @property
    def can_negotiate(self) -> bool:
        """Active and not soft-deleted."""
        return self.is_active and not self.is_deleted

    def save(self, *args, **kwargs) -> None:
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        local, _, domain = (self.email or "").partition("@")
        return f"{self.username} ({local[:1]}***@{domain})"
