"""Tests for the secret hasher."""

import hashlib
import hmac
import secrets

import pytest

from sdms.core.exceptions import InvalidArgumentError
from sdms.infrastructure.auth.password_hasher import (
    DIGEST_BYTES,
    SALT_BYTES,
    SecretHasher,
    generate_random_password,
)


class TestSecretHasher:

    def test_hash_returns_digest_and_salt(self, hasher):
        digest = hasher.hash("SecureP@ss1")

        assert len(digest.hash) == DIGEST_BYTES
        assert len(digest.salt) == SALT_BYTES

    def test_verify_correct_password(self, hasher):
        digest = hasher.hash("SecureP@ss1")

        assert hasher.verify("SecureP@ss1", digest.hash, digest.salt) is True

    def test_verify_wrong_password(self, hasher):
        digest = hasher.hash("SecureP@ss1")

        assert hasher.verify("SecureP@ss2", digest.hash, digest.salt) is False

    def test_verify_with_other_accounts_salt_fails(self, hasher):
        first = hasher.hash("SecureP@ss1")
        second = hasher.hash("SecureP@ss1")

        assert hasher.verify("SecureP@ss1", first.hash, second.salt) is False

    def test_same_password_gets_fresh_salt(self, hasher):
        salts = {hasher.hash("SecureP@ss1").salt for _ in range(5)}

        assert len(salts) == 5

    def test_unicode_password(self, hasher):
        digest = hasher.hash("Pässwörd-日本1")

        assert hasher.verify("Pässwörd-日本1", digest.hash, digest.salt) is True

    @pytest.mark.parametrize("password", ["", None])
    def test_hash_rejects_empty_password(self, hasher, password):
        with pytest.raises(InvalidArgumentError):
            hasher.hash(password)

    def test_verify_rejects_empty_password(self, hasher):
        digest = hasher.hash("SecureP@ss1")

        with pytest.raises(InvalidArgumentError):
            hasher.verify("", digest.hash, digest.salt)

    def test_verify_uses_constant_time_comparison(self, hasher, monkeypatch):
        calls = []
        real_compare = hmac.compare_digest

        def spy(a, b):
            calls.append((a, b))
            return real_compare(a, b)

        monkeypatch.setattr(hmac, "compare_digest", spy)
        digest = hasher.hash("SecureP@ss1")
        hasher.verify("SecureP@ss1", digest.hash, digest.salt)

        assert len(calls) == 1

    def test_current_digest_does_not_need_rehash(self, hasher):
        digest = hasher.hash("SecureP@ss1")

        assert hasher.needs_rehash(digest.hash, digest.salt) is False

    def test_dummy_verify_is_always_false(self, hasher):
        assert hasher.dummy_verify("anything") is False
        assert hasher.dummy_verify("") is False


class TestLegacyDigests:
    """Digests produced by the previous system: HMAC-SHA512 keyed by the salt."""

    @staticmethod
    def legacy_digest(password: str) -> tuple[bytes, bytes]:
        salt = secrets.token_bytes(128)
        return hmac.new(salt, password.encode("utf-8"), hashlib.sha512).digest(), salt

    def test_legacy_digest_verifies(self, hasher):
        stored_hash, stored_salt = self.legacy_digest("OldPass1")

        assert hasher.verify("OldPass1", stored_hash, stored_salt) is True
        assert hasher.verify("OldPass2", stored_hash, stored_salt) is False

    def test_legacy_digest_needs_rehash(self, hasher):
        stored_hash, stored_salt = self.legacy_digest("OldPass1")

        assert hasher.needs_rehash(stored_hash, stored_salt) is True


def test_generate_random_password_is_long_and_unique():
    passwords = {generate_random_password() for _ in range(10)}

    assert len(passwords) == 10
    assert all(len(p) >= 32 for p in passwords)


def test_from_settings_uses_configured_costs(settings):
    hasher = SecretHasher.from_settings(settings)

    assert hasher.time_cost == settings.argon2_time_cost
    assert hasher.memory_cost == settings.argon2_memory_cost
    assert hasher.parallelism == settings.argon2_parallelism
