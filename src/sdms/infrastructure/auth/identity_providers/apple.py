"""Sign in with Apple identity provider."""

from typing import Any

from sdms.infrastructure.auth.identity_providers.base import IdentityProvider


class AppleIdentityProvider(IdentityProvider):
    """Verifies Apple-issued OpenID Connect id_tokens.

    Apple sends ``email_verified`` as either a boolean or the string "true",
    and never includes a display name in the id_token.
    """

    @property
    def provider_name(self) -> str:
        return "apple"

    @property
    def display_name(self) -> str:
        return "Apple"

    @property
    def issuers(self) -> tuple[str, ...]:
        return ("https://appleid.apple.com",)

    @property
    def jwks_uri(self) -> str:
        return "https://appleid.apple.com/auth/keys"

    def email_verified(self, claims: dict[str, Any]) -> bool:
        value = claims.get("email_verified")
        return value is True or value == "true"

    def display_name_from(self, claims: dict[str, Any]) -> str | None:
        return None
