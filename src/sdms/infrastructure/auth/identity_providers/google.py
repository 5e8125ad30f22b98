"""Google Sign-In identity provider."""

from typing import Any

from sdms.infrastructure.auth.identity_providers.base import IdentityProvider


class GoogleIdentityProvider(IdentityProvider):
    """Verifies Google-issued OpenID Connect id_tokens."""

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def display_name(self) -> str:
        return "Google"

    @property
    def issuers(self) -> tuple[str, ...]:
        return ("accounts.google.com", "https://accounts.google.com")

    @property
    def jwks_uri(self) -> str:
        return "https://www.googleapis.com/oauth2/v3/certs"

    def email_verified(self, claims: dict[str, Any]) -> bool:
        return claims.get("email_verified") is True
