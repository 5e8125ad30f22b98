"""Tests for the JWKS key cache."""

import pytest

from sdms.core.exceptions import AssertionInvalidError
from sdms.infrastructure.auth.identity_providers.jwks import JWKSKeyStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_fetches_once_while_fresh(jwks_fetcher):
    store = JWKSKeyStore("https://keys.example", ttl_seconds=60, fetcher=jwks_fetcher)

    await store.get_signing_key("key-1")
    await store.get_signing_key("key-1")

    assert jwks_fetcher.calls == 1


@pytest.mark.asyncio
async def test_refetches_after_ttl(jwks_fetcher):
    clock = FakeClock()
    store = JWKSKeyStore("https://keys.example", ttl_seconds=60, fetcher=jwks_fetcher, clock=clock)

    await store.get_signing_key("key-1")
    clock.now += 61
    await store.get_signing_key("key-1")

    assert jwks_fetcher.calls == 2


@pytest.mark.asyncio
async def test_unknown_kid_triggers_one_refresh(rsa_key, other_rsa_key, jwk_for, fetcher_for):
    fetcher = fetcher_for(
        {"keys": [jwk_for(rsa_key, "key-1")]},
        {"keys": [jwk_for(rsa_key, "key-1"), jwk_for(other_rsa_key, "key-2")]},
    )
    clock = FakeClock()
    store = JWKSKeyStore("https://keys.example", fetcher=fetcher, clock=clock)
    await store.get_signing_key("key-1")
    clock.now += 61

    key = await store.get_signing_key("key-2")

    assert key.key_id == "key-2"
    assert fetcher.calls == 2


@pytest.mark.asyncio
async def test_unknown_kids_are_rejected_without_fetching_during_cooldown(jwks_fetcher):
    clock = FakeClock()
    store = JWKSKeyStore("https://keys.example", fetcher=jwks_fetcher, clock=clock)
    await store.get_signing_key("key-1")

    for attempt in range(50):
        with pytest.raises(AssertionInvalidError):
            await store.get_signing_key(f"bogus-{attempt}")

    assert jwks_fetcher.calls == 1

    # Once the cooldown has passed an unknown kid may refetch again, but only once
    clock.now += 60
    with pytest.raises(AssertionInvalidError):
        await store.get_signing_key("bogus-late")
    with pytest.raises(AssertionInvalidError):
        await store.get_signing_key("bogus-later")

    assert jwks_fetcher.calls == 2


@pytest.mark.asyncio
async def test_key_never_published_is_rejected(jwks_fetcher):
    store = JWKSKeyStore("https://keys.example", fetcher=jwks_fetcher)

    with pytest.raises(AssertionInvalidError):
        await store.get_signing_key("missing")


@pytest.mark.asyncio
async def test_malformed_document_is_rejected(fetcher_for):
    store = JWKSKeyStore("https://keys.example", fetcher=fetcher_for({"nokeys": True}))

    with pytest.raises(AssertionInvalidError):
        await store.get_signing_key("key-1")


@pytest.mark.asyncio
async def test_encryption_keys_are_ignored(rsa_key, jwk_for, fetcher_for):
    jwk = jwk_for(rsa_key, "enc-key")
    jwk["use"] = "enc"
    store = JWKSKeyStore("https://keys.example", fetcher=fetcher_for({"keys": [jwk]}))

    with pytest.raises(AssertionInvalidError):
        await store.get_signing_key("enc-key")
