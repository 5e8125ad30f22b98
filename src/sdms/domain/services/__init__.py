"""Domain services for the SDMS credential authority.

Services contain the business logic of authentication: role resolution,
password policy, reset tokens, external identities and the orchestrating
credential authority.
"""

from sdms.domain.services.audit_service import (
    AuditAction,
    AuditCollaborator,
    AuditLogService,
)
from sdms.domain.services.credential_authority import (
    CredentialAuthority,
    ResetNotifier,
    StartupDirectory,
)
from sdms.domain.services.external_identity_bridge import BridgedAccount, ExternalIdentityBridge
from sdms.domain.services.password_validator import (
    PasswordValidationError,
    PasswordValidator,
    default_password_validator,
)
from sdms.domain.services.reset_token_manager import ResetTicket, ResetTokenManager
from sdms.domain.services.role_resolver import RoleResolver

__all__ = [
    "AuditAction",
    "AuditCollaborator",
    "AuditLogService",
    "BridgedAccount",
    "CredentialAuthority",
    "ExternalIdentityBridge",
    "PasswordValidationError",
    "PasswordValidator",
    "ResetNotifier",
    "ResetTicket",
    "ResetTokenManager",
    "RoleResolver",
    "StartupDirectory",
    "default_password_validator",
]
