"""Audit trail for credential operations.

The credential authority reports user actions (login, password change) and
entity changes (create, update) through the ``AuditCollaborator`` protocol.
``AuditLogService`` is the database-backed implementation.
"""

import json
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from sdms.core.logging import get_logger
from sdms.infrastructure.persistence.models.audit_log import AuditLogModel
from sdms.infrastructure.persistence.repositories.audit_log_repository import (
    AuditLogRepository,
)

logger = get_logger(__name__)


class AuditAction:
    """Audit action names."""

    LOGIN = "Login"
    LOGOUT = "Logout"
    EXTERNAL_LOGIN = "ExternalLogin"
    CREATE = "Create"
    UPDATE = "Update"
    PASSWORD_CHANGE = "PasswordChange"
    PASSWORD_RESET_REQUESTED = "PasswordResetRequested"
    PASSWORD_RESET = "PasswordReset"
    DEACTIVATE = "Deactivate"
    REACTIVATE = "Reactivate"


ACCOUNT_ENTITY = "Account"

MASKED_VALUE = "***"


class AuditCollaborator(Protocol):
    """Receiver of audit events."""

    async def log_user_action(
        self,
        account_id: int | None,
        action: str,
        detail: str | None = None,
        ip_address: str | None = None,
    ) -> None: ...

    async def log_entity_change(
        self,
        action: str,
        entity_id: int,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
        actor_id: int | None = None,
        entity_name: str = ACCOUNT_ENTITY,
        ip_address: str | None = None,
    ) -> None: ...


class AuditLogService:
    """Persists audit events to the audit_logs table.

    Each call commits on its own, after the primary operation has already
    been committed. On failure the session is rolled back and the error is
    re-raised; the caller decides whether to continue.
    """

    # Fields that should always be masked
    PASSWORD_FIELDS = {
        "password",
        "new_password",
        "current_password",
        "password_hash",
        "password_salt",
        "reset_token",
        "reset_token_hash",
    }

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the audit log service.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session
        self.repository = AuditLogRepository(session)

    async def log_user_action(
        self,
        account_id: int | None,
        action: str,
        detail: str | None = None,
        ip_address: str | None = None,
    ) -> None:
        """Record an action performed by an account.

        Args:
            account_id: Acting account (also the affected entity).
            action: Action name (see ``AuditAction``).
            detail: Free-text detail, never secret material.
            ip_address: Client IP address when known.
        """
        await self._write(
            AuditLogModel(
                actor_id=account_id,
                action=action,
                entity_name=ACCOUNT_ENTITY,
                entity_id=account_id,
                new_values=detail,
                ip_address=ip_address,
            )
        )

    async def log_entity_change(
        self,
        action: str,
        entity_id: int,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
        actor_id: int | None = None,
        entity_name: str = ACCOUNT_ENTITY,
        ip_address: str | None = None,
    ) -> None:
        """Record a change to an entity with before/after snapshots.

        Args:
            action: Action name (see ``AuditAction``).
            entity_id: Id of the changed entity.
            old_values: Snapshot before the change, None for creations.
            new_values: Snapshot after the change.
            actor_id: Account that made the change, if different from the entity.
            entity_name: Entity type.
            ip_address: Client IP address when known.
        """
        await self._write(
            AuditLogModel(
                actor_id=actor_id if actor_id is not None else entity_id,
                action=action,
                entity_name=entity_name,
                entity_id=entity_id,
                old_values=self._serialize(old_values),
                new_values=self._serialize(new_values),
                ip_address=ip_address,
            )
        )

    async def _write(self, entry: AuditLogModel) -> None:
        try:
            await self.repository.create(entry)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.debug(
            "Audit entry recorded",
            action=entry.action,
            entity_name=entry.entity_name,
            entity_id=entry.entity_id,
        )

    @classmethod
    def _serialize(cls, values: dict[str, Any] | None) -> str | None:
        if values is None:
            return None
        masked = {
            key: MASKED_VALUE if key in cls.PASSWORD_FIELDS else value
            for key, value in values.items()
        }
        return json.dumps(masked, default=str, sort_keys=True)
