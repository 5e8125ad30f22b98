"""Lookup of configured identity providers by name."""

from sdms.core.config import Settings
from sdms.core.exceptions import UnsupportedProviderError
from sdms.infrastructure.auth.identity_providers.apple import AppleIdentityProvider
from sdms.infrastructure.auth.identity_providers.base import IdentityProvider
from sdms.infrastructure.auth.identity_providers.google import GoogleIdentityProvider
from sdms.infrastructure.auth.identity_providers.jwks import JWKSFetcher


class IdentityProviderRegistry:
    """Registry of identity providers, keyed by lowercase provider name."""

    def __init__(self, providers: list[IdentityProvider] | None = None) -> None:
        self._providers: dict[str, IdentityProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: IdentityProvider) -> None:
        self._providers[provider.provider_name.lower()] = provider

    def get(self, name: str | None) -> IdentityProvider:
        """Return the provider registered under ``name`` (case-insensitive).

        Raises:
            UnsupportedProviderError: If no such provider is configured.
        """
        provider = self._providers.get((name or "").strip().lower())
        if provider is None:
            raise UnsupportedProviderError(f"Unsupported identity provider: {name}")
        return provider

    def names(self) -> list[str]:
        return sorted(self._providers)

    @classmethod
    def from_settings(
        cls, settings: Settings, fetcher: JWKSFetcher | None = None
    ) -> "IdentityProviderRegistry":
        """Build a registry holding every provider that has client ids configured."""
        registry = cls()
        ttl = settings.jwks_cache_ttl_seconds
        if settings.google_client_ids:
            registry.register(
                GoogleIdentityProvider(
                    settings.google_client_ids, jwks_cache_ttl_seconds=ttl, fetcher=fetcher
                )
            )
        if settings.apple_client_ids:
            registry.register(
                AppleIdentityProvider(
                    settings.apple_client_ids, jwks_cache_ttl_seconds=ttl, fetcher=fetcher
                )
            )
        return registry
