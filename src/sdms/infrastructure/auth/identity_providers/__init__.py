"""External identity providers."""

from sdms.infrastructure.auth.identity_providers.apple import AppleIdentityProvider
from sdms.infrastructure.auth.identity_providers.base import ExternalIdentity, IdentityProvider
from sdms.infrastructure.auth.identity_providers.google import GoogleIdentityProvider
from sdms.infrastructure.auth.identity_providers.jwks import JWKSKeyStore, fetch_jwks
from sdms.infrastructure.auth.identity_providers.registry import IdentityProviderRegistry

__all__ = [
    "AppleIdentityProvider",
    "ExternalIdentity",
    "GoogleIdentityProvider",
    "IdentityProvider",
    "IdentityProviderRegistry",
    "JWKSKeyStore",
    "fetch_jwks",
]
