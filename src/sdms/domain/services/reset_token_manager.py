"""Password reset tokens.

A reset token is 256 bits of randomness handed to the caller once. Only its
SHA-256 digest is stored on the account, together with an expiry instant.
Requesting a new token overwrites the previous one, so at most one token is
live per account. Redeeming a token changes the password and clears the
token in the same update.
"""

import asyncio
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from sdms.core.config import Settings
from sdms.core.exceptions import ConcurrentUpdateError
from sdms.core.logging import get_logger
from sdms.infrastructure.auth.password_hasher import SecretHasher
from sdms.infrastructure.persistence.database import as_utc, utcnow
from sdms.infrastructure.persistence.models.account import AccountModel
from sdms.infrastructure.persistence.repositories.account_repository import AccountRepository

logger = get_logger(__name__)

RESET_TOKEN_BYTES = 32


def hash_reset_token(token: str) -> str:
    """SHA-256 hex digest of a raw reset token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ResetTicket:
    """A freshly issued reset token and where it belongs.

    Attributes:
        account_id: Account the token resets.
        email: Account email, for delivery.
        token: Raw token. Never stored or logged.
        expires_at: Instant after which the token is rejected.
    """

    account_id: int
    email: str
    token: str
    expires_at: datetime


class ResetTokenManager:
    """Issues and redeems password reset tokens."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        hasher: SecretHasher,
        account_repo: AccountRepository | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            session: SQLAlchemy async session.
            settings: Application settings (reset token lifetime).
            hasher: Secret hasher for the new password.
            account_repo: Account repository; built from the session if omitted.
        """
        self.session = session
        self.hasher = hasher
        self.lifetime = timedelta(hours=settings.reset_token_expire_hours)
        self.account_repo = account_repo or AccountRepository(session)

    async def request_reset(self, email: str, now: datetime | None = None) -> ResetTicket | None:
        """Issue a reset token for an account.

        Args:
            email: Account email (case-insensitive).
            now: Issue instant; defaults to the current UTC time.

        Returns:
            ResetTicket with the raw token, or None if no account has that
            email. Nothing is written in the None case.
        """
        account = await self.account_repo.get_by_email(email)
        if account is None:
            logger.info("Password reset requested for unknown email")
            return None

        now = as_utc(now) or utcnow()
        token = secrets.token_urlsafe(RESET_TOKEN_BYTES)
        account.reset_token_hash = hash_reset_token(token)
        account.reset_token_expires_at = now + self.lifetime
        await self._save(account)

        logger.info("Password reset token issued", account_id=account.id)
        return ResetTicket(
            account_id=account.id,
            email=account.email,
            token=token,
            expires_at=account.reset_token_expires_at,
        )

    async def redeem(
        self,
        email: str,
        token: str,
        new_password: str,
        now: datetime | None = None,
    ) -> AccountModel | None:
        """Redeem a reset token and set a new password.

        Succeeds only if the email matches an account, the token matches the
        stored one and ``now`` is before the stored expiry. An expired token
        is cleared as a side effect.

        Args:
            email: Account email (case-insensitive).
            token: Raw reset token.
            new_password: Replacement password (policy checked by the caller).
            now: Redemption instant; defaults to the current UTC time.

        Returns:
            The updated account on success, None otherwise.

        Raises:
            ConcurrentUpdateError: If the account changed concurrently.
        """
        account = await self.account_repo.get_by_email(email)
        if account is None or not account.reset_token_hash or not token:
            logger.info("Password reset rejected: no live token")
            return None

        now = as_utc(now) or utcnow()
        expires_at = as_utc(account.reset_token_expires_at)
        if expires_at is None or not now < expires_at:
            account.reset_token_hash = None
            account.reset_token_expires_at = None
            await self.account_repo.update(account)
            await self.session.commit()
            logger.info("Password reset rejected: token expired", account_id=account.id)
            return None

        if not hmac.compare_digest(hash_reset_token(token), account.reset_token_hash):
            logger.info("Password reset rejected: token mismatch", account_id=account.id)
            return None

        digest = await asyncio.to_thread(self.hasher.hash, new_password)
        account.password_hash = digest.hash
        account.password_salt = digest.salt
        account.reset_token_hash = None
        account.reset_token_expires_at = None
        await self._save(account)

        logger.info("Password reset completed", account_id=account.id)
        return account

    async def _save(self, account: AccountModel) -> None:
        try:
            await self.account_repo.update(account)
            await self.session.commit()
        except ConcurrentUpdateError:
            await self.session.rollback()
            raise
