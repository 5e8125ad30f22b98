"""External identity provider base class.

This module defines the abstract base class for identity providers whose
signed identity assertions (OpenID Connect id_tokens) can be exchanged for a
local session. Each provider verifies signature, issuer, audience and expiry
against its published signing keys before any claim is trusted.
"""

import abc
from dataclasses import dataclass
from typing import Any

import jwt

from sdms.core.exceptions import AssertionInvalidError, ConfigurationError
from sdms.core.logging import get_logger
from sdms.infrastructure.auth.identity_providers.jwks import JWKSFetcher, JWKSKeyStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExternalIdentity:
    """Identity attested by an external provider.

    Attributes:
        provider: Provider identifier (e.g. 'google').
        subject: Provider-scoped stable user id.
        email: Email address asserted by the provider.
        name: Display name, when the provider includes one.
        email_verified: Whether the provider verified the email.
    """

    provider: str
    subject: str
    email: str
    name: str | None = None
    email_verified: bool = False


class IdentityProvider(abc.ABC):
    """Abstract base class for external identity providers.

    Subclasses describe where the provider publishes keys, which issuers it
    signs as, and how its claims map onto an ExternalIdentity.
    """

    algorithms: tuple[str, ...] = ("RS256",)
    leeway_seconds: int = 30

    def __init__(
        self,
        client_ids: list[str],
        key_store: JWKSKeyStore | None = None,
        jwks_cache_ttl_seconds: int = 3600,
        fetcher: JWKSFetcher | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            client_ids: Accepted audiences (this application's client ids).
            key_store: Pre-built key store; built from ``jwks_uri`` when omitted.
            jwks_cache_ttl_seconds: Key cache lifetime for the default key store.
            fetcher: Optional JWKS fetcher for the default key store.
        """
        self.client_ids = list(client_ids)
        self.key_store = key_store or JWKSKeyStore(
            self.jwks_uri, ttl_seconds=jwks_cache_ttl_seconds, fetcher=fetcher
        )

    @property
    @abc.abstractmethod
    def provider_name(self) -> str:
        """Lowercase provider identifier (e.g. 'google', 'apple')."""
        pass

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        """Human-readable provider name."""
        pass

    @property
    @abc.abstractmethod
    def issuers(self) -> tuple[str, ...]:
        """Accepted ``iss`` values."""
        pass

    @property
    @abc.abstractmethod
    def jwks_uri(self) -> str:
        """Endpoint publishing the provider's signing keys."""
        pass

    @abc.abstractmethod
    def email_verified(self, claims: dict[str, Any]) -> bool:
        """Read the provider's email verification flag from verified claims."""
        pass

    def display_name_from(self, claims: dict[str, Any]) -> str | None:
        """Read a display name from verified claims, if present."""
        return claims.get("name")

    async def verify_assertion(self, assertion: str) -> ExternalIdentity:
        """Verify an identity assertion and return the attested identity.

        Args:
            assertion: Encoded id_token issued by the provider.

        Returns:
            ExternalIdentity built from the verified claims.

        Raises:
            ConfigurationError: If no client ids are configured.
            AssertionInvalidError: If any signature or claim check fails.
        """
        if not self.client_ids:
            raise ConfigurationError(f"No client ids configured for {self.display_name}")
        if not assertion:
            raise AssertionInvalidError("Assertion is empty")

        try:
            header = jwt.get_unverified_header(assertion)
        except jwt.InvalidTokenError as e:
            raise AssertionInvalidError("Assertion is malformed") from e

        kid = header.get("kid")
        if not kid:
            raise AssertionInvalidError("Assertion has no key id")
        if header.get("alg") not in self.algorithms:
            raise AssertionInvalidError("Assertion uses an unsupported algorithm")

        signing_key = await self.key_store.get_signing_key(kid)

        try:
            claims = jwt.decode(
                assertion,
                signing_key.key,
                algorithms=list(self.algorithms),
                audience=self.client_ids,
                leeway=self.leeway_seconds,
                options={"require": ["iss", "sub", "aud", "exp", "iat"]},
            )
        except jwt.InvalidTokenError as e:
            logger.info(
                "Identity assertion rejected",
                provider=self.provider_name,
                reason=type(e).__name__,
            )
            raise AssertionInvalidError(f"Assertion rejected: {type(e).__name__}") from e

        if claims.get("iss") not in self.issuers:
            raise AssertionInvalidError("Assertion issuer is not accepted")

        email = claims.get("email")
        if not email or not isinstance(email, str):
            raise AssertionInvalidError("Assertion carries no email")

        verified = self.email_verified(claims)
        if not verified:
            raise AssertionInvalidError("Provider has not verified the email")

        return ExternalIdentity(
            provider=self.provider_name,
            subject=str(claims["sub"]),
            email=email,
            name=self.display_name_from(claims),
            email_verified=verified,
        )
