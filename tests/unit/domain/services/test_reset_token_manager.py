"""Unit tests for ResetTokenManager."""

from datetime import datetime, timedelta, timezone

import pytest

from sdms.domain.services.reset_token_manager import (
    ResetTokenManager,
    hash_reset_token,
)
from sdms.infrastructure.persistence.repositories import AccountRepository

NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def manager(db_session, settings, hasher):
    return ResetTokenManager(db_session, settings, hasher)


async def _reload(db_session, account_id):
    db_session.expire_all()
    return await AccountRepository(db_session).get_by_id(account_id)


@pytest.mark.asyncio
async def test_request_reset_stores_hash_and_expiry(manager, db_session, create_account):
    account = await create_account(email="fay@example.com")

    ticket = await manager.request_reset("FAY@example.com", now=NOW)

    assert ticket is not None
    assert ticket.account_id == account.id
    assert len(ticket.token) >= 43  # 32 random bytes, base64url
    assert ticket.expires_at == NOW + timedelta(hours=24)
    stored = await _reload(db_session, account.id)
    assert stored.reset_token_hash == hash_reset_token(ticket.token)
    assert stored.reset_token_hash != ticket.token


@pytest.mark.asyncio
async def test_request_reset_unknown_email_writes_nothing(manager, db_session, create_account):
    account = await create_account(email="fay@example.com")

    assert await manager.request_reset("nobody@x.com", now=NOW) is None

    stored = await _reload(db_session, account.id)
    assert stored.reset_token_hash is None
    assert stored.version == 1


@pytest.mark.asyncio
async def test_new_request_overwrites_previous_token(manager, create_account):
    await create_account(email="fay@example.com")
    first = await manager.request_reset("fay@example.com", now=NOW)
    second = await manager.request_reset("fay@example.com", now=NOW)

    assert first.token != second.token
    assert await manager.redeem("fay@example.com", first.token, "NewPass1", now=NOW) is None
    assert await manager.redeem("fay@example.com", second.token, "NewPass1", now=NOW) is not None


@pytest.mark.asyncio
async def test_redeem_sets_password_and_clears_token(manager, db_session, create_account, hasher):
    account = await create_account(email="fay@example.com", password="OldPass1")
    ticket = await manager.request_reset("fay@example.com", now=NOW)

    redeemed = await manager.redeem(
        "fay@example.com", ticket.token, "NewPass1", now=NOW + timedelta(hours=1)
    )

    assert redeemed is not None
    stored = await _reload(db_session, account.id)
    assert stored.reset_token_hash is None
    assert stored.reset_token_expires_at is None
    assert hasher.verify("NewPass1", stored.password_hash, stored.password_salt) is True
    assert hasher.verify("OldPass1", stored.password_hash, stored.password_salt) is False


@pytest.mark.asyncio
async def test_redeem_twice_fails_second_time(manager, create_account):
    await create_account(email="fay@example.com")
    ticket = await manager.request_reset("fay@example.com", now=NOW)

    first = await manager.redeem("fay@example.com", ticket.token, "NewPass1", now=NOW)
    second = await manager.redeem("fay@example.com", ticket.token, "Other1234", now=NOW)

    assert first is not None
    assert second is None


@pytest.mark.asyncio
async def test_wrong_token_is_rejected(manager, db_session, create_account):
    account = await create_account(email="fay@example.com")
    await manager.request_reset("fay@example.com", now=NOW)

    assert await manager.redeem("fay@example.com", "guess", "NewPass1", now=NOW) is None
    stored = await _reload(db_session, account.id)
    assert stored.reset_token_hash is not None


@pytest.mark.asyncio
async def test_token_for_other_email_is_rejected(manager, create_account):
    await create_account(email="fay@example.com")
    await create_account(email="sam@example.com")
    ticket = await manager.request_reset("fay@example.com", now=NOW)

    assert await manager.redeem("sam@example.com", ticket.token, "NewPass1", now=NOW) is None


@pytest.mark.asyncio
async def test_expired_token_is_rejected_and_cleared(manager, db_session, create_account):
    account = await create_account(email="fay@example.com")
    ticket = await manager.request_reset("fay@example.com", now=NOW)

    result = await manager.redeem(
        "fay@example.com", ticket.token, "NewPass1", now=ticket.expires_at
    )

    assert result is None
    stored = await _reload(db_session, account.id)
    assert stored.reset_token_hash is None


@pytest.mark.asyncio
async def test_redeem_without_request_fails(manager, create_account):
    await create_account(email="fay@example.com")

    assert await manager.redeem("fay@example.com", "anything", "NewPass1", now=NOW) is None


@pytest.mark.asyncio
async def test_naive_now_is_treated_as_utc(manager, create_account):
    await create_account(email="fay@example.com")
    ticket = await manager.request_reset("fay@example.com", now=NOW.replace(tzinfo=None))

    assert await manager.redeem(
        "fay@example.com", ticket.token, "NewPass1", now=NOW.replace(tzinfo=None)
    ) is not None
