"""Pytest configuration for unit tests."""

from pathlib import Path
from typing import AsyncGenerator

import pytest_asyncio

from sdms.core.config import Settings
from sdms.infrastructure.persistence.database import DatabaseManager


@pytest_asyncio.fixture
async def file_db(settings: Settings, tmp_path: Path) -> AsyncGenerator[DatabaseManager, None]:
    """Database manager over a temporary SQLite file.

    Unlike the in-memory session, this supports several concurrent sessions
    and enforces foreign keys.
    """
    db_settings = settings.model_copy(
        update={"database_url": f"sqlite+aiosqlite:///{tmp_path / 'sdms.db'}"}
    )
    manager = DatabaseManager(db_settings)
    await manager.create_tables()
    yield manager
    await manager.drop_tables()
    await manager.disconnect()
