"""Bearer token issuing and validation.

Tokens are HMAC-signed JWTs carrying the subject account id, role, issuer,
audience, a unique token id, and issue/expiry instants. Tokens are never
revoked individually: natural expiry is the only cancellation mechanism, so
the configured lifetime bounds the exposure of a leaked token.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from sdms.core.config import MIN_SECRET_BYTES, Settings
from sdms.core.exceptions import (
    ConfigurationError,
    InvalidArgumentError,
    SignatureMismatchError,
    TokenExpiredError,
    TokenInvalidError,
)
from sdms.domain.entities.account import TokenClaims
from sdms.domain.entities.role import Role

TOKEN_TYPE = "access"

RESERVED_CLAIMS = frozenset({"sub", "uid", "role", "email", "iss", "aud", "jti", "iat", "exp", "nbf", "typ"})

REQUIRED_CLAIMS = ["sub", "role", "iss", "aud", "jti", "iat", "exp"]


@dataclass(frozen=True)
class IssuedToken:
    """A freshly minted bearer token.

    Attributes:
        token: Encoded JWT.
        expires_at: Expiry instant (UTC).
        token_id: Unique token id (``jti``).
    """

    token: str
    expires_at: datetime
    token_id: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _normalize(now: datetime | None) -> datetime:
    if now is None:
        return _utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


class JWTService:
    """Service for creating and validating bearer tokens.

    All configuration is checked when the service is built; a service that
    exists can sign. ``issue`` re-checks the key before signing so a broken
    instance fails closed rather than emitting an unsigned token.
    """

    def __init__(
        self,
        secret_key: str,
        issuer: str,
        audience: str,
        expire_minutes: int,
        algorithm: str = "HS256",
    ) -> None:
        """Initialize the token service.

        Args:
            secret_key: Shared HMAC secret (at least 32 bytes).
            issuer: Issuer claim written into and required on tokens.
            audience: Audience claim written into and required on tokens.
            expire_minutes: Token lifetime in minutes.
            algorithm: HMAC algorithm (HS256, HS384 or HS512).

        Raises:
            ConfigurationError: If any value is missing or malformed.
        """
        if not secret_key or len(secret_key.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigurationError(
                f"Token signing secret must be at least {MIN_SECRET_BYTES} bytes"
            )
        if not issuer or not audience:
            raise ConfigurationError("Token issuer and audience are required")
        if expire_minutes is None or expire_minutes <= 0:
            raise ConfigurationError("Token lifetime must be a positive number of minutes")
        if algorithm not in ("HS256", "HS384", "HS512"):
            raise ConfigurationError(f"Unsupported token algorithm: {algorithm}")

        self._secret_key = secret_key
        self.issuer = issuer
        self.audience = audience
        self.lifetime = timedelta(minutes=expire_minutes)
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "JWTService":
        """Build the service from application settings."""
        return cls(
            secret_key=settings.jwt_secret,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            expire_minutes=settings.access_token_expire_minutes,
            algorithm=settings.jwt_algorithm,
        )

    def issue(
        self,
        account_id: int,
        role: Role,
        extra_claims: dict[str, Any] | None = None,
        now: datetime | None = None,
        email: str | None = None,
    ) -> IssuedToken:
        """Mint a signed bearer token.

        Args:
            account_id: Subject account id.
            role: Effective role at issue time.
            extra_claims: Additional non-reserved claims.
            now: Issue instant; defaults to the current UTC time. Truncated
                to whole seconds, as are the iat and exp claims.
            email: Optional email claim.

        Returns:
            IssuedToken with the encoded token and its expiry.

        Raises:
            InvalidArgumentError: If extra claims try to override reserved claims.
            ConfigurationError: If the signing key is unavailable.
        """
        if not self._secret_key:
            raise ConfigurationError("Token signing secret is not configured")

        extra_claims = extra_claims or {}
        overridden = RESERVED_CLAIMS & extra_claims.keys()
        if overridden:
            raise InvalidArgumentError(
                f"Extra claims may not override reserved claims: {', '.join(sorted(overridden))}"
            )

        # NumericDate claims carry whole seconds
        issued_at = _normalize(now).replace(microsecond=0)
        expires_at = issued_at + self.lifetime
        token_id = uuid.uuid4().hex

        payload: dict[str, Any] = {
            **extra_claims,
            "iss": self.issuer,
            "aud": self.audience,
            "sub": str(account_id),
            "uid": int(account_id),
            "role": Role(role).value,
            "jti": token_id,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "typ": TOKEN_TYPE,
        }
        if email is not None:
            payload["email"] = email

        token = jwt.encode(payload, self._secret_key, algorithm=self.algorithm)
        return IssuedToken(
            token=token,
            expires_at=expires_at,
            token_id=token_id,
        )

    def validate(self, token: str, now: datetime | None = None) -> TokenClaims:
        """Validate a bearer token and return its claims.

        Signature, issuer, audience and required claims are verified by PyJWT
        before any claim is read; expiry is then checked against ``now``.

        Args:
            token: Encoded JWT.
            now: Validation instant; defaults to the current UTC time.

        Returns:
            TokenClaims for the token's subject.

        Raises:
            SignatureMismatchError: If the signature does not verify.
            TokenExpiredError: If ``now`` is at or past the expiry instant.
            TokenInvalidError: If the token is malformed or a claim check fails.
        """
        if not token:
            raise TokenInvalidError("Token is empty")

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise SignatureMismatchError("Token signature mismatch") from e
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {type(e).__name__}") from e

        if payload.get("typ") != TOKEN_TYPE:
            raise TokenInvalidError("Not an access token")

        try:
            account_id = int(payload["sub"])
            role = Role(payload["role"])
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError) as e:
            raise TokenInvalidError("Malformed token claims") from e

        if not _normalize(now) < expires_at:
            raise TokenExpiredError("Token has expired")

        return TokenClaims(
            account_id=account_id,
            role=role,
            email=payload.get("email"),
            token_id=str(payload["jti"]),
            issued_at=issued_at,
            expires_at=expires_at,
            extra={k: v for k, v in payload.items() if k not in RESERVED_CLAIMS},
        )

    def get_expires_in(self) -> int:
        """Token lifetime in seconds."""
        return int(self.lifetime.total_seconds())


def extract_bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Args:
        authorization: Raw header value.

    Returns:
        The token string.

    Raises:
        TokenInvalidError: If the header is missing or malformed.
    """
    if not authorization:
        raise TokenInvalidError("Missing authorization header")
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise TokenInvalidError("Malformed authorization header")
    return token
