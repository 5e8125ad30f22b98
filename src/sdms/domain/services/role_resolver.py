"""Role resolution from profile linkage.

The effective role of an account is decided by which profile rows exist for
it, never by the denormalised ``role`` column on the account.
"""

from sdms.core.logging import get_logger
from sdms.domain.entities.role import Role
from sdms.infrastructure.persistence.repositories.account_repository import AccountRepository

logger = get_logger(__name__)


class RoleResolver:
    """Resolves an account's effective role.

    Precedence when more than one profile is linked (malformed data):
    Administrator > Founder > Employee > User.
    """

    def __init__(self, account_repo: AccountRepository) -> None:
        """Initialize the resolver.

        Args:
            account_repo: Repository exposing profile-link existence checks.
        """
        self.account_repo = account_repo

    async def resolve(self, account_id: int) -> Role:
        """Resolve the effective role of an account.

        Args:
            account_id: Numeric account id.

        Returns:
            The most privileged linked role, or USER when no profile is linked.
        """
        links = await self.account_repo.get_profile_links(account_id)
        if len(links) > 1:
            logger.warning(
                "Account has more than one role profile",
                account_id=account_id,
                roles=sorted(role.value for role in links),
            )
        return Role.most_privileged(links)
