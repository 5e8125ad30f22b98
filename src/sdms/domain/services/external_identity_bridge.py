"""Maps verified external identities onto local accounts.

The assertion is verified by the named provider before any claim is read.
The verified email then selects an existing account, or a new one is created
with a random password nobody knows, so password login stays impossible
until an explicit reset.
"""

import asyncio
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sdms.core.config import Settings
from sdms.core.logging import get_logger
from sdms.domain.entities.role import AdministratorProfile, FounderProfile, Role, RoleProfile
from sdms.infrastructure.auth.identity_providers.base import ExternalIdentity
from sdms.infrastructure.auth.identity_providers.registry import IdentityProviderRegistry
from sdms.infrastructure.auth.password_hasher import SecretHasher, generate_random_password
from sdms.infrastructure.persistence.models.account import AccountModel
from sdms.infrastructure.persistence.repositories.account_repository import (
    AccountRepository,
    normalize_email,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class BridgedAccount:
    """Local account matched or created for an external identity.

    Attributes:
        account: The local account.
        identity: The verified external identity.
        created: True when the account was created by this login.
    """

    account: AccountModel
    identity: ExternalIdentity
    created: bool


def _profile_for(role: Role) -> RoleProfile | None:
    if role == Role.ADMINISTRATOR:
        return AdministratorProfile()
    if role == Role.FOUNDER:
        return FounderProfile()
    return None


class ExternalIdentityBridge:
    """Finds or creates the local account for an external login."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        providers: IdentityProviderRegistry,
        hasher: SecretHasher,
        account_repo: AccountRepository | None = None,
    ) -> None:
        """Initialize the bridge.

        Args:
            session: SQLAlchemy async session.
            settings: Application settings (default role for new accounts).
            providers: Registry of configured identity providers.
            hasher: Secret hasher for the unusable local password.
            account_repo: Account repository; built from the session if omitted.
        """
        self.session = session
        self.providers = providers
        self.hasher = hasher
        self.default_role = Role(settings.external_default_role)
        self.account_repo = account_repo or AccountRepository(session)

    async def resolve(self, provider_name: str, assertion: str) -> BridgedAccount:
        """Verify an assertion and return the matching local account.

        Args:
            provider_name: Provider identifier (case-insensitive).
            assertion: Encoded identity assertion.

        Returns:
            BridgedAccount with the matched or created account.

        Raises:
            UnsupportedProviderError: If the provider is not configured.
            AssertionInvalidError: If the assertion fails verification.
        """
        provider = self.providers.get(provider_name)
        identity = await provider.verify_assertion(assertion)

        account = await self.account_repo.get_by_email(identity.email)
        if account is not None:
            return BridgedAccount(account=account, identity=identity, created=False)

        return await self._create(identity)

    async def _create(self, identity: ExternalIdentity) -> BridgedAccount:
        digest = await asyncio.to_thread(self.hasher.hash, generate_random_password())
        email = normalize_email(identity.email)
        account = AccountModel(
            email=email,
            username=email.split("@", 1)[0],
            name=identity.name or "",
            password_hash=digest.hash,
            password_salt=digest.salt,
            role=self.default_role.value,
            is_active=True,
        )

        try:
            await self.account_repo.create(account, _profile_for(self.default_role))
            await self.session.commit()
        except IntegrityError:
            # A concurrent login created the same email first
            await self.session.rollback()
            existing = await self.account_repo.get_by_email(email)
            if existing is None:
                raise
            logger.info(
                "External account created concurrently, using existing",
                provider=identity.provider,
                account_id=existing.id,
            )
            return BridgedAccount(account=existing, identity=identity, created=False)

        logger.info(
            "Account created from external identity",
            provider=identity.provider,
            account_id=account.id,
            role=self.default_role.value,
        )
        return BridgedAccount(account=account, identity=identity, created=True)
