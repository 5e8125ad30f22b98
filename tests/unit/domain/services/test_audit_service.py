"""Tests for the database-backed audit collaborator."""

import json
from unittest.mock import AsyncMock

import pytest

from sdms.domain.services.audit_service import ACCOUNT_ENTITY, AuditAction, AuditLogService
from sdms.infrastructure.persistence.repositories import AuditLogRepository


@pytest.mark.asyncio
async def test_log_user_action(db_session):
    service = AuditLogService(db_session)

    await service.log_user_action(7, AuditAction.LOGIN, ip_address="10.0.0.1")

    entries = await AuditLogRepository(db_session).list_for_entity(ACCOUNT_ENTITY, 7)
    assert len(entries) == 1
    assert entries[0].action == "Login"
    assert entries[0].actor_id == 7
    assert entries[0].ip_address == "10.0.0.1"
    assert entries[0].occurred_at is not None


@pytest.mark.asyncio
async def test_log_entity_change_serializes_snapshots(db_session):
    service = AuditLogService(db_session)

    await service.log_entity_change(
        AuditAction.UPDATE,
        7,
        {"name": "Old", "email": "a@b.com"},
        {"name": "New", "email": "a@b.com"},
        actor_id=1,
    )

    entry = (await AuditLogRepository(db_session).list_for_entity(ACCOUNT_ENTITY, 7))[0]
    assert entry.actor_id == 1
    assert json.loads(entry.old_values) == {"name": "Old", "email": "a@b.com"}
    assert json.loads(entry.new_values)["name"] == "New"


@pytest.mark.asyncio
async def test_creation_has_no_old_values(db_session):
    service = AuditLogService(db_session)

    await service.log_entity_change(AuditAction.CREATE, 3, None, {"email": "a@b.com"})

    entry = (await AuditLogRepository(db_session).list_for_entity(ACCOUNT_ENTITY, 3))[0]
    assert entry.old_values is None
    assert entry.actor_id == 3


@pytest.mark.asyncio
async def test_password_fields_are_masked(db_session):
    service = AuditLogService(db_session)

    await service.log_entity_change(
        AuditAction.UPDATE, 7, None, {"password": "Secret123", "reset_token": "abc", "name": "Fay"}
    )

    entry = (await AuditLogRepository(db_session).list_for_entity(ACCOUNT_ENTITY, 7))[0]
    new_values = json.loads(entry.new_values)
    assert new_values["password"] == "***"
    assert new_values["reset_token"] == "***"
    assert new_values["name"] == "Fay"
    assert "Secret123" not in entry.new_values


@pytest.mark.asyncio
async def test_failure_rolls_back_and_propagates():
    session = AsyncMock()
    session.add = lambda entry: None
    session.flush.side_effect = RuntimeError("disk full")
    service = AuditLogService(session)

    with pytest.raises(RuntimeError):
        await service.log_user_action(7, AuditAction.LOGIN)

    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()
