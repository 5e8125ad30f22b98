"""Domain entities for the SDMS credential authority.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from sdms.domain.entities.account import AccountSummary, AuthResult, ProfileUpdate, TokenClaims
from sdms.domain.entities.role import (
    AdministratorProfile,
    EmployeeProfile,
    FounderProfile,
    Role,
    RoleProfile,
    role_for_profile,
)

__all__ = [
    "AccountSummary",
    "AdministratorProfile",
    "AuthResult",
    "EmployeeProfile",
    "FounderProfile",
    "ProfileUpdate",
    "Role",
    "RoleProfile",
    "TokenClaims",
    "role_for_profile",
]
