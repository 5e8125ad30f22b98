"""Pytest configuration for all tests."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sdms.core.config import Settings, load_settings
from sdms.infrastructure.auth.jwt_service import JWTService
from sdms.infrastructure.auth.password_hasher import SecretHasher
from sdms.infrastructure.persistence.database import Base
from sdms.infrastructure.persistence import models  # noqa: F401

TEST_SECRET = "test-secret-key-at-least-256-bits-long-for-security"


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: cheap hashing, in-memory database."""
    return load_settings(
        environment="testing",
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret=TEST_SECRET,
        jwt_issuer="sdms-test",
        jwt_audience="sdms-test-clients",
        access_token_expire_minutes=15,
        argon2_time_cost=1,
        argon2_memory_cost=8,
        argon2_parallelism=1,
        google_client_ids=["google-client-id"],
        apple_client_ids=["com.example.sdms"],
    )


@pytest.fixture
def hasher(settings: Settings) -> SecretHasher:
    return SecretHasher.from_settings(settings)


@pytest.fixture
def token_service(settings: Settings) -> JWTService:
    return JWTService.from_settings(settings)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database for testing.
    """
    # Create in-memory SQLite database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_maker() as session:
        yield session
        await session.rollback()

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def create_account(db_session: AsyncSession, hasher: SecretHasher):
    """Factory that inserts an account (and optional profile) and commits."""
    from sdms.infrastructure.persistence.models import AccountModel
    from sdms.infrastructure.persistence.repositories import AccountRepository

    async def _create(
        email: str = "a@b.com",
        password: str = "Secret123",
        profile=None,
        role: str | None = None,
        is_active: bool = True,
        name: str = "Test User",
    ) -> AccountModel:
        digest = hasher.hash(password)
        account = AccountModel(
            email=email,
            username=email.split("@", 1)[0],
            name=name,
            password_hash=digest.hash,
            password_salt=digest.salt,
            role=role or (profile.role.value if profile is not None else "User"),
            is_active=is_active,
        )
        await AccountRepository(db_session).create(account, profile)
        await db_session.commit()
        return account

    return _create
