"""JSON Web Key Set retrieval and caching.

Identity providers publish their signing keys as a JWKS document. Keys are
cached for a configurable TTL and refetched once when an assertion names a
key id that is not in the cache (providers rotate keys). Such forced refetches
are rate limited, so unknown key ids cannot turn every request into an
outbound fetch.
"""

import time
from typing import Any, Awaitable, Callable

import httpx
import jwt

from sdms.core.exceptions import AssertionInvalidError
from sdms.core.logging import get_logger

logger = get_logger(__name__)

JWKSFetcher = Callable[[str], Awaitable[dict[str, Any]]]


async def fetch_jwks(uri: str) -> dict[str, Any]:
    """Fetch a JWKS document over HTTPS.

    Args:
        uri: The provider's JWKS endpoint.

    Returns:
        Parsed JWKS document.

    Raises:
        AssertionInvalidError: If the document cannot be retrieved or parsed.
    """
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            response = await client.get(uri)
        except httpx.HTTPError as e:
            logger.warning("JWKS fetch failed", uri=uri, error=str(e))
            raise AssertionInvalidError("Unable to fetch provider signing keys") from e

        if response.status_code != 200:
            logger.warning("JWKS fetch returned error status", uri=uri, status=response.status_code)
            raise AssertionInvalidError("Unable to fetch provider signing keys")

        try:
            return response.json()
        except ValueError as e:
            raise AssertionInvalidError("Provider signing keys are malformed") from e


class JWKSKeyStore:
    """Cache of one provider's signing keys, indexed by key id."""

    def __init__(
        self,
        jwks_uri: str,
        ttl_seconds: int = 3600,
        fetcher: JWKSFetcher | None = None,
        clock: Callable[[], float] = time.monotonic,
        min_refresh_interval_seconds: float = 60.0,
    ) -> None:
        """Initialize the key store.

        Args:
            jwks_uri: The provider's JWKS endpoint.
            ttl_seconds: How long a fetched key set stays fresh.
            fetcher: Coroutine returning the JWKS document (defaults to HTTPS fetch).
            clock: Monotonic clock used for TTL bookkeeping.
            min_refresh_interval_seconds: Minimum age of the cached key set
                before an unknown key id may force a refetch.
        """
        self.jwks_uri = jwks_uri
        self.ttl_seconds = ttl_seconds
        self._fetcher = fetcher or fetch_jwks
        self._clock = clock
        self.min_refresh_interval_seconds = min_refresh_interval_seconds
        self._keys: dict[str, jwt.PyJWK] = {}
        self._fetched_at: float | None = None

    def _is_fresh(self) -> bool:
        return self._fetched_at is not None and self._clock() - self._fetched_at < self.ttl_seconds

    def _may_force_refresh(self) -> bool:
        return (
            self._fetched_at is None
            or self._clock() - self._fetched_at >= self.min_refresh_interval_seconds
        )

    async def refresh(self) -> None:
        """Refetch the key set and replace the cache."""
        document = await self._fetcher(self.jwks_uri)
        raw_keys = document.get("keys") if isinstance(document, dict) else None
        if not isinstance(raw_keys, list):
            raise AssertionInvalidError("Provider signing keys are malformed")

        keys: dict[str, jwt.PyJWK] = {}
        for raw_key in raw_keys:
            if not isinstance(raw_key, dict) or "kid" not in raw_key:
                continue
            if raw_key.get("use", "sig") != "sig":
                continue
            try:
                keys[raw_key["kid"]] = jwt.PyJWK(raw_key)
            except jwt.PyJWTError:
                logger.warning("Skipping unusable provider key", uri=self.jwks_uri, kid=raw_key.get("kid"))

        self._keys = keys
        self._fetched_at = self._clock()
        logger.debug("Provider signing keys refreshed", uri=self.jwks_uri, key_count=len(keys))

    async def get_signing_key(self, kid: str) -> jwt.PyJWK:
        """Return the signing key for a key id.

        Args:
            kid: Key id from the assertion header.

        Returns:
            The matching public key.

        Raises:
            AssertionInvalidError: If no key with that id is published.
        """
        if not self._is_fresh():
            await self.refresh()

        key = self._keys.get(kid)
        if key is None and self._may_force_refresh():
            # Possible rotation since the last fetch
            await self.refresh()
            key = self._keys.get(kid)
        if key is None:
            raise AssertionInvalidError("Assertion signed with an unknown key")
        return key
