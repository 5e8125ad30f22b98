"""Fixtures for identity provider tests: RSA keys and signed assertions."""

import json
import time
from typing import Any

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

GOOGLE_CLIENT_ID = "google-client-id"
APPLE_CLIENT_ID = "com.example.sdms"


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def public_jwk(private_key, kid: str) -> dict[str, Any]:
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
    return jwk


class FakeJWKSFetcher:
    """Serves JWKS documents from memory and counts fetches."""

    def __init__(self, *documents: dict[str, Any]) -> None:
        self.documents = list(documents)
        self.calls = 0

    async def __call__(self, uri: str) -> dict[str, Any]:
        index = min(self.calls, len(self.documents) - 1)
        self.calls += 1
        return self.documents[index]


@pytest.fixture
def jwk_for():
    return public_jwk


@pytest.fixture
def fetcher_for():
    return FakeJWKSFetcher


@pytest.fixture
def jwks_fetcher(rsa_key):
    return FakeJWKSFetcher({"keys": [public_jwk(rsa_key, "key-1")]})


@pytest.fixture
def make_assertion(rsa_key):
    """Build a signed id_token; keyword arguments override claims."""

    def _make(
        issuer: str = "https://accounts.google.com",
        audience: str = GOOGLE_CLIENT_ID,
        kid: str = "key-1",
        key=None,
        **claims: Any,
    ) -> str:
        now = int(time.time())
        payload = {
            "iss": issuer,
            "aud": audience,
            "sub": "provider-user-1",
            "email": "founder@example.com",
            "email_verified": True,
            "name": "Fay Founder",
            "iat": now,
            "exp": now + 600,
        }
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        return jwt.encode(payload, key or rsa_key, algorithm="RS256", headers={"kid": kid})

    return _make
