"""Account-facing value objects returned by the credential authority.

Callers never receive ORM models: these snapshots exclude password and
reset-token material by construction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sdms.domain.entities.role import Role


@dataclass(frozen=True)
class AccountSummary:
    """Public view of an account.

    Attributes:
        id: Numeric account id.
        email: Normalised (lower-case) email address.
        username: Denormalised convenience name.
        name: Display name.
        phone_number: Optional phone number.
        role: Effective role derived from the profile linkage.
        is_active: Whether the account can log in.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    id: int
    email: str
    username: str
    name: str
    role: Role
    is_active: bool
    phone_number: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful login.

    Attributes:
        account: Public view of the authenticated account.
        token: Signed bearer token.
        expires_at: Instant after which the token is rejected.
        token_id: Unique token id (``jti``) for correlation.
        created: True when an external login created the account.
    """

    account: AccountSummary
    token: str
    expires_at: datetime
    token_id: str
    created: bool = False


@dataclass(frozen=True)
class ProfileUpdate:
    """Fields a user may change on their own profile. None means unchanged."""

    name: str | None = None
    email: str | None = None
    phone_number: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Validated claims of a bearer token.

    Attributes:
        account_id: Subject account id.
        role: Role at issue time.
        email: Email at issue time.
        token_id: Unique token id (``jti``).
        issued_at: Issue instant.
        expires_at: Expiry instant.
        extra: Any additional claims supplied at issue time.
    """

    account_id: int
    role: Role
    email: str | None
    token_id: str
    issued_at: datetime
    expires_at: datetime
    extra: dict[str, Any] = field(default_factory=dict)
