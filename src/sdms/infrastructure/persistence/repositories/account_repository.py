"""Account repository for database operations."""

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from sdms.core.exceptions import ConcurrentUpdateError
from sdms.domain.entities.role import (
    AdministratorProfile,
    EmployeeProfile,
    FounderProfile,
    Role,
    RoleProfile,
)
from sdms.infrastructure.persistence.models import (
    AccountModel,
    AdministratorProfileModel,
    EmployeeProfileModel,
    FounderProfileModel,
)


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup."""
    return email.strip().lower()


class AccountRepository:
    """Repository for account and role profile database operations.

    Methods flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(
        self, account: AccountModel, profile: RoleProfile | None = None
    ) -> AccountModel:
        """Create a new account and, optionally, its role profile.

        Both rows are flushed in the session's current transaction.

        Args:
            account: Account model to create.
            profile: Role profile to link, or None for a plain user.

        Returns:
            Created account model with its id populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If the email is already taken.
        """
        account.email = normalize_email(account.email)
        self.session.add(account)
        await self.session.flush()

        if profile is not None:
            self.session.add(self._to_profile_model(account.id, profile))
            await self.session.flush()
        return account

    async def get_by_id(self, account_id: int) -> AccountModel | None:
        """Get an account by ID.

        Args:
            account_id: Numeric account id.

        Returns:
            Account model if found, None otherwise.
        """
        result = await self.session.execute(
            select(AccountModel).where(AccountModel.id == account_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> AccountModel | None:
        """Get an account by email, ignoring case.

        Args:
            email: Email address.

        Returns:
            Account model if found, None otherwise.
        """
        result = await self.session.execute(
            select(AccountModel).where(
                func.lower(AccountModel.email) == normalize_email(email)
            )
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str, exclude_id: int | None = None) -> bool:
        """Check if an email is taken, optionally ignoring one account.

        Args:
            email: Email to check.
            exclude_id: Account id to ignore (the caller's own account).

        Returns:
            True if another account uses the email, False otherwise.
        """
        query = select(AccountModel.id).where(
            func.lower(AccountModel.email) == normalize_email(email)
        )
        if exclude_id is not None:
            query = query.where(AccountModel.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def update(self, account: AccountModel) -> AccountModel:
        """Flush pending changes to an account.

        Args:
            account: Modified account model attached to this session.

        Returns:
            The updated account model.

        Raises:
            ConcurrentUpdateError: If the row version changed underneath us.
        """
        # A failed flush expires the instance, so read the id first
        account_id = account.id
        try:
            await self.session.flush()
        except StaleDataError as e:
            raise ConcurrentUpdateError(
                f"Account {account_id} was modified by another request"
            ) from e
        return account

    async def get_profile_links(self, account_id: int) -> set[Role]:
        """Return the set of roles whose profile rows exist for an account.

        Args:
            account_id: Numeric account id.

        Returns:
            Set of linked roles; empty for a plain user.
        """
        result = await self.session.execute(
            select(
                exists().where(AdministratorProfileModel.account_id == account_id),
                exists().where(FounderProfileModel.account_id == account_id),
                exists().where(EmployeeProfileModel.account_id == account_id),
            )
        )
        is_admin, is_founder, is_employee = result.one()

        links: set[Role] = set()
        if is_admin:
            links.add(Role.ADMINISTRATOR)
        if is_founder:
            links.add(Role.FOUNDER)
        if is_employee:
            links.add(Role.EMPLOYEE)
        return links

    async def add_profile(self, account_id: int, profile: RoleProfile) -> None:
        """Link a role profile to an existing account."""
        self.session.add(self._to_profile_model(account_id, profile))
        await self.session.flush()

    @staticmethod
    def _to_profile_model(
        account_id: int, profile: RoleProfile
    ) -> AdministratorProfileModel | FounderProfileModel | EmployeeProfileModel:
        """Convert a domain profile to its infrastructure model."""
        if isinstance(profile, AdministratorProfile):
            return AdministratorProfileModel(
                account_id=account_id,
                admin_level=profile.admin_level,
                department=profile.department,
            )
        if isinstance(profile, FounderProfile):
            return FounderProfileModel(
                account_id=account_id,
                company_name=profile.company_name,
                bio=profile.bio,
                linkedin_profile=profile.linkedin_profile,
            )
        if isinstance(profile, EmployeeProfile):
            return EmployeeProfileModel(
                account_id=account_id,
                startup_id=profile.startup_id,
                position=profile.position,
                employee_role=profile.employee_role,
                hire_date=profile.hire_date,
            )
        raise TypeError(f"Unknown role profile type: {type(profile).__name__}")
