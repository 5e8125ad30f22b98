"""Persistence repositories for database operations."""

from sdms.infrastructure.persistence.repositories.account_repository import (
    AccountRepository,
    normalize_email,
)
from sdms.infrastructure.persistence.repositories.audit_log_repository import (
    AuditLogRepository,
)

__all__ = [
    "AccountRepository",
    "AuditLogRepository",
    "normalize_email",
]
