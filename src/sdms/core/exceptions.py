"""Typed failures raised by the credential authority.

Every failure carries a stable machine-readable ``code``. Callers map them to
an external response with :func:`to_public_error`, which never reveals which
individual security check failed.
"""

from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class CredentialError(Exception):
    """Base exception for all credential authority failures."""

    code = "credential_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidCredentialsError(CredentialError):
    """Raised for an unknown email, a wrong password or an inactive account.

    The three causes are deliberately indistinguishable.
    """

    code = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class AlreadyExistsError(CredentialError):
    """Raised when registering an email that is already taken."""

    code = "already_exists"


class EmailInUseError(CredentialError):
    """Raised when a profile update would collide with another account's email."""

    code = "email_in_use"


class AccountNotFoundError(CredentialError):
    """Raised when an operation targets an account id that does not exist."""

    code = "account_not_found"


class ConcurrentUpdateError(CredentialError):
    """Raised when an optimistic concurrency check loses a race.

    The caller should reload and retry.
    """

    code = "concurrent_update"


class InvalidArgumentError(CredentialError):
    """Raised for malformed input such as an empty password.

    Attributes:
        violations: Optional list of rule violations (password policy).
    """

    code = "invalid_argument"

    def __init__(self, message: str, violations: list[str] | None = None) -> None:
        super().__init__(message)
        self.violations = violations or []


class TokenError(CredentialError):
    """Base exception for bearer token validation failures."""

    code = "token_error"


class TokenInvalidError(TokenError):
    """Raised when a token is malformed or fails a claim check."""

    code = "token_invalid"


class TokenExpiredError(TokenError):
    """Raised when a token is past its expiry instant."""

    code = "token_expired"


class SignatureMismatchError(TokenError):
    """Raised when a token signature does not verify under the configured key."""

    code = "signature_mismatch"


class ConfigurationError(CredentialError):
    """Raised when required configuration is missing or malformed.

    Fatal at startup; if it surfaces per request the operation fails closed.
    """

    code = "configuration_error"


class UnsupportedProviderError(CredentialError):
    """Raised when an external login names an unknown identity provider."""

    code = "unsupported_provider"


class AssertionInvalidError(CredentialError):
    """Raised when an external identity assertion fails verification."""

    code = "assertion_invalid"


@dataclass(frozen=True)
class PublicError:
    """Caller-safe description of a failure.

    Attributes:
        code: Stable error code.
        message: Human-readable message safe to return to clients.
        status: Suggested HTTP status code.
    """

    code: str
    message: str
    status: int


_PUBLIC_ERRORS: dict[type[CredentialError], PublicError] = {
    InvalidCredentialsError: PublicError("invalid_credentials", "Invalid email or password", 401),
    TokenError: PublicError("unauthorized", "Authentication required", 401),
    AssertionInvalidError: PublicError("unauthorized", "External authentication failed", 401),
    UnsupportedProviderError: PublicError("unsupported_provider", "Unsupported identity provider", 400),
    AlreadyExistsError: PublicError("already_exists", "An account with this email already exists", 409),
    EmailInUseError: PublicError("email_in_use", "Email is already in use", 409),
    AccountNotFoundError: PublicError("not_found", "Account not found", 404),
    ConcurrentUpdateError: PublicError("conflict", "The account was modified concurrently, retry", 409),
    InvalidArgumentError: PublicError("invalid_argument", "Invalid request", 400),
}

_INTERNAL_ERROR = PublicError("internal_error", "An internal error occurred", 500)


def to_public_error(exc: BaseException, **context: Any) -> PublicError:
    """Map an exception to a uniform, caller-safe error.

    Security failures are collapsed so the response never reveals which check
    failed. Anything unexpected (including configuration defects) is logged
    with full context and reported as a generic internal error.

    Args:
        exc: The exception raised by the authority.
        **context: Extra fields to attach to the internal log entry.

    Returns:
        PublicError for the caller.
    """
    for error_type in type(exc).__mro__:
        public = _PUBLIC_ERRORS.get(error_type)  # type: ignore[arg-type]
        if public is not None:
            if isinstance(exc, InvalidArgumentError) and exc.violations:
                return PublicError(public.code, "; ".join(exc.violations), public.status)
            return public

    logger.error(
        "Unhandled error in credential authority",
        error_type=type(exc).__name__,
        exc_info=exc,
        **context,
    )
    return _INTERNAL_ERROR
