"""Credential authority: the entry point for every credential operation.

Each operation is a single request/response cycle over one database session.
Password hashing runs in a worker thread so the event loop is never blocked.
Audit events are written after the primary change has been committed; an
audit failure is logged and never undoes or aborts the operation.

Bearer tokens are stateless and are not revoked on logout. A leaked token
stays valid until it expires, so the configured token lifetime bounds the
exposure.
"""

import asyncio
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sdms.core.config import Settings
from sdms.core.exceptions import (
    AccountNotFoundError,
    AlreadyExistsError,
    ConcurrentUpdateError,
    EmailInUseError,
    InvalidArgumentError,
    InvalidCredentialsError,
)
from sdms.core.logging import get_logger
from sdms.domain.entities.account import AccountSummary, AuthResult, ProfileUpdate, TokenClaims
from sdms.domain.entities.role import (
    AdministratorProfile,
    EmployeeProfile,
    FounderProfile,
    Role,
    RoleProfile,
    role_for_profile,
)
from sdms.domain.services.audit_service import AuditAction, AuditCollaborator, AuditLogService
from sdms.domain.services.external_identity_bridge import ExternalIdentityBridge
from sdms.domain.services.password_validator import PasswordValidator
from sdms.domain.services.reset_token_manager import ResetTicket, ResetTokenManager
from sdms.domain.services.role_resolver import RoleResolver
from sdms.infrastructure.auth.identity_providers.registry import IdentityProviderRegistry
from sdms.infrastructure.auth.jwt_service import JWTService, extract_bearer_token
from sdms.infrastructure.auth.password_hasher import SecretHasher
from sdms.infrastructure.persistence.models.account import AccountModel
from sdms.infrastructure.persistence.repositories.account_repository import (
    AccountRepository,
    normalize_email,
)

logger = get_logger(__name__)


class StartupDirectory(Protocol):
    """Lookup of startups that employees can be registered against."""

    async def startup_exists(self, startup_id: int) -> bool: ...


class ResetNotifier(Protocol):
    """Delivers password reset tokens to account holders."""

    async def send_reset_token(self, email: str, token: str, expires_at: datetime) -> None: ...


def _snapshot(account: AccountModel) -> dict[str, Any]:
    """Audit view of an account. Excludes credential material."""
    return {
        "email": account.email,
        "username": account.username,
        "name": account.name,
        "phone_number": account.phone_number,
        "role": account.role,
        "is_active": account.is_active,
    }


def _summary(account: AccountModel, role: Role) -> AccountSummary:
    return AccountSummary(
        id=account.id,
        email=account.email,
        username=account.username,
        name=account.name,
        role=role,
        is_active=account.is_active,
        phone_number=account.phone_number,
        created_at=account.created_at,
        updated_at=account.updated_at,
    )


def _require_email(email: str | None) -> str:
    email = normalize_email(email or "")
    local, _, domain = email.partition("@")
    if not local or not domain:
        raise InvalidArgumentError("A valid email address is required")
    return email


class CredentialAuthority:
    """Orchestrates login, registration and credential changes.

    Collaborators are injected; any left out are built from the settings.
    Long-lived collaborators (hasher, token service, identity providers)
    should be created once and shared across requests.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        hasher: SecretHasher | None = None,
        token_service: JWTService | None = None,
        providers: IdentityProviderRegistry | None = None,
        audit: AuditCollaborator | None = None,
        startup_directory: StartupDirectory | None = None,
        reset_notifier: ResetNotifier | None = None,
    ) -> None:
        """Initialize the authority.

        Args:
            session: SQLAlchemy async session for this request.
            settings: Application settings.
            hasher: Secret hasher.
            token_service: Bearer token issuer/validator.
            providers: Configured external identity providers.
            audit: Audit collaborator; defaults to the database audit log.
            startup_directory: Validates employee startup references when given.
            reset_notifier: Delivers reset tokens when given.

        Raises:
            ConfigurationError: If token settings are unusable.
        """
        self.session = session
        self.settings = settings
        self.hasher = hasher or SecretHasher.from_settings(settings)
        self.token_service = token_service or JWTService.from_settings(settings)
        self.providers = providers or IdentityProviderRegistry.from_settings(settings)
        self.audit = audit if audit is not None else AuditLogService(session)
        self.startup_directory = startup_directory
        self.reset_notifier = reset_notifier
        self._deliveries: set[asyncio.Task[None]] = set()

        self.account_repo = AccountRepository(session)
        self.password_validator = PasswordValidator.from_settings(settings)
        self.role_resolver = RoleResolver(self.account_repo)
        self.reset_tokens = ResetTokenManager(session, settings, self.hasher, self.account_repo)
        self.identity_bridge = ExternalIdentityBridge(
            session, settings, self.providers, self.hasher, self.account_repo
        )

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def login(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        now: datetime | None = None,
    ) -> AuthResult:
        """Authenticate with email and password.

        Unknown email, wrong password and inactive account all raise the same
        error after the same amount of hashing work.

        Args:
            email: Account email (case-insensitive).
            password: Plaintext password.
            ip_address: Client IP address for the audit trail.
            now: Token issue instant; defaults to the current UTC time.

        Returns:
            AuthResult with the account summary and a bearer token.

        Raises:
            InvalidCredentialsError: On any credential failure.
        """
        account = await self.account_repo.get_by_email(email) if email else None
        if account is None or not password:
            await asyncio.to_thread(self.hasher.dummy_verify, password)
            logger.info("Login failed", reason="unknown_account_or_empty_password")
            raise InvalidCredentialsError()

        verified = await asyncio.to_thread(
            self.hasher.verify, password, account.password_hash, account.password_salt
        )
        if not verified or not account.is_active:
            logger.info("Login failed", account_id=account.id)
            raise InvalidCredentialsError()

        role = await self.role_resolver.resolve(account.id)
        summary = _summary(account, role)
        await self._refresh_after_login(account, password, role)
        issued = self.token_service.issue(summary.id, role, email=summary.email, now=now)
        logger.info("Login succeeded", account_id=summary.id, role=role.value)

        await self._audit_user_action(summary.id, AuditAction.LOGIN, ip_address=ip_address)
        return AuthResult(
            account=summary,
            token=issued.token,
            expires_at=issued.expires_at,
            token_id=issued.token_id,
        )

    async def _refresh_after_login(self, account: AccountModel, password: str, role: Role) -> None:
        """Upgrade outdated hashes and resync the denormalised role.

        A lost race here must not fail the login; the next login retries.
        """
        changed = False
        if self.hasher.needs_rehash(account.password_hash, account.password_salt):
            digest = await asyncio.to_thread(self.hasher.hash, password)
            account.password_hash = digest.hash
            account.password_salt = digest.salt
            changed = True
            logger.info("Password hash upgraded", account_id=account.id)
        if account.role != role.value:
            logger.warning(
                "Stored role drifted from profile linkage",
                account_id=account.id,
                stored_role=account.role,
                resolved_role=role.value,
            )
            account.role = role.value
            changed = True
        if not changed:
            return

        account_id = account.id
        try:
            await self.account_repo.update(account)
            await self.session.commit()
        except ConcurrentUpdateError:
            await self.session.rollback()
            logger.info("Post-login account refresh lost a race", account_id=account_id)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register_admin(
        self,
        email: str,
        password: str,
        name: str,
        admin_level: str = "SystemAdmin",
        department: str | None = None,
        username: str | None = None,
        phone_number: str | None = None,
        actor_id: int | None = None,
        ip_address: str | None = None,
    ) -> AccountSummary:
        """Register an administrator account."""
        profile = AdministratorProfile(admin_level=admin_level, department=department)
        return await self._register(
            email, password, name, profile, username, phone_number, actor_id, ip_address
        )

    async def register_founder(
        self,
        email: str,
        password: str,
        name: str,
        company_name: str | None = None,
        bio: str | None = None,
        linkedin_profile: str | None = None,
        username: str | None = None,
        phone_number: str | None = None,
        actor_id: int | None = None,
        ip_address: str | None = None,
    ) -> AccountSummary:
        """Register a startup founder account."""
        profile = FounderProfile(
            company_name=company_name, bio=bio, linkedin_profile=linkedin_profile
        )
        return await self._register(
            email, password, name, profile, username, phone_number, actor_id, ip_address
        )

    async def register_employee(
        self,
        email: str,
        password: str,
        name: str,
        startup_id: int,
        position: str | None = None,
        employee_role: str | None = None,
        hire_date: datetime | None = None,
        username: str | None = None,
        phone_number: str | None = None,
        actor_id: int | None = None,
        ip_address: str | None = None,
    ) -> AccountSummary:
        """Register an employee account.

        Raises:
            InvalidArgumentError: If the startup directory does not know ``startup_id``.
        """
        if self.startup_directory is not None and not await self.startup_directory.startup_exists(
            startup_id
        ):
            raise InvalidArgumentError(f"Startup {startup_id} does not exist")

        profile = EmployeeProfile(
            startup_id=startup_id,
            position=position,
            employee_role=employee_role,
            hire_date=hire_date,
        )
        return await self._register(
            email, password, name, profile, username, phone_number, actor_id, ip_address
        )

    async def _register(
        self,
        email: str,
        password: str,
        name: str,
        profile: RoleProfile,
        username: str | None,
        phone_number: str | None,
        actor_id: int | None,
        ip_address: str | None,
    ) -> AccountSummary:
        """Create an account and its profile in one transaction.

        Raises:
            InvalidArgumentError: If the email or password is malformed.
            AlreadyExistsError: If the email is taken, including by a concurrent registration.
        """
        email = _require_email(email)
        self.password_validator.enforce(password)

        if await self.account_repo.email_exists(email):
            logger.info("Registration rejected: email already registered")
            raise AlreadyExistsError("An account with this email already exists")

        digest = await asyncio.to_thread(self.hasher.hash, password)
        role = role_for_profile(profile)
        account = AccountModel(
            email=email,
            username=username or email.split("@", 1)[0],
            name=name or "",
            phone_number=phone_number,
            password_hash=digest.hash,
            password_salt=digest.salt,
            role=role.value,
            is_active=True,
        )

        try:
            await self.account_repo.create(account, profile)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.info("Registration lost a race for the same email")
            raise AlreadyExistsError("An account with this email already exists") from e

        logger.info("Account registered", account_id=account.id, role=role.value)
        await self._audit_entity_change(
            AuditAction.CREATE,
            account.id,
            None,
            _snapshot(account),
            actor_id=actor_id,
            ip_address=ip_address,
        )
        return _summary(account, role)

    # ------------------------------------------------------------------
    # Credential and profile changes
    # ------------------------------------------------------------------

    async def change_password(
        self,
        account_id: int,
        current_password: str,
        new_password: str,
        ip_address: str | None = None,
    ) -> None:
        """Change a password after verifying the current one.

        Raises:
            AccountNotFoundError: If the account does not exist.
            InvalidCredentialsError: If the current password is wrong.
            InvalidArgumentError: If the new password violates the policy.
            ConcurrentUpdateError: If the account changed concurrently.
        """
        account = await self._load(account_id)
        if not current_password:
            raise InvalidCredentialsError()

        verified = await asyncio.to_thread(
            self.hasher.verify, current_password, account.password_hash, account.password_salt
        )
        if not verified:
            logger.info("Password change rejected: wrong current password", account_id=account_id)
            raise InvalidCredentialsError()

        self.password_validator.enforce(new_password)
        digest = await asyncio.to_thread(self.hasher.hash, new_password)
        account.password_hash = digest.hash
        account.password_salt = digest.salt
        await self._save(account)

        logger.info("Password changed", account_id=account_id)
        await self._audit_user_action(account_id, AuditAction.PASSWORD_CHANGE, ip_address=ip_address)

    async def update_profile(
        self,
        account_id: int,
        update: ProfileUpdate,
        ip_address: str | None = None,
    ) -> AccountSummary:
        """Apply profile changes. Fields left as None are unchanged.

        Raises:
            AccountNotFoundError: If the account does not exist.
            EmailInUseError: If the new email belongs to another account.
            InvalidArgumentError: If the new email is malformed.
            ConcurrentUpdateError: If the account changed concurrently.
        """
        account = await self._load(account_id)
        old_values = _snapshot(account)

        if update.email is not None:
            email = _require_email(update.email)
            if email != account.email:
                if await self.account_repo.email_exists(email, exclude_id=account_id):
                    raise EmailInUseError("Email is already in use")
                account.email = email
        if update.name is not None:
            account.name = update.name
        if update.phone_number is not None:
            account.phone_number = update.phone_number

        role = await self.role_resolver.resolve(account_id)
        new_values = _snapshot(account)
        if new_values == old_values:
            return _summary(account, role)

        try:
            await self.account_repo.update(account)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise EmailInUseError("Email is already in use") from e
        except ConcurrentUpdateError:
            await self.session.rollback()
            raise

        logger.info("Profile updated", account_id=account_id)
        await self._audit_entity_change(
            AuditAction.UPDATE, account_id, old_values, new_values, ip_address=ip_address
        )
        return _summary(account, role)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def request_password_reset(
        self,
        email: str,
        ip_address: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """Issue a reset token and schedule its delivery through the reset notifier.

        Returns None whether or not the email exists, so callers cannot use
        this to discover accounts. Delivery happens in a background task; use
        ``wait_for_deliveries`` before shutting down.
        """
        ticket = await self.reset_tokens.request_reset(email, now=now) if email else None
        if ticket is None:
            return None

        await self._audit_user_action(
            ticket.account_id, AuditAction.PASSWORD_RESET_REQUESTED, ip_address=ip_address
        )
        if self.reset_notifier is None:
            logger.warning(
                "No reset notifier configured, reset token not delivered",
                account_id=ticket.account_id,
            )
            return None

        # Delivery runs off the request path so known and unknown emails answer alike
        task = asyncio.create_task(self._deliver_reset_token(ticket))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)
        return None

    async def _deliver_reset_token(self, ticket: ResetTicket) -> None:
        try:
            await self.reset_notifier.send_reset_token(ticket.email, ticket.token, ticket.expires_at)
        except Exception:
            logger.error(
                "Reset token delivery failed", account_id=ticket.account_id, exc_info=True
            )

    async def wait_for_deliveries(self) -> None:
        """Wait until every scheduled reset token delivery has finished."""
        while self._deliveries:
            await asyncio.gather(*self._deliveries)

    async def reset_password(
        self,
        email: str,
        token: str,
        new_password: str,
        ip_address: str | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Redeem a reset token and set a new password.

        Returns:
            True if the password was reset, False if the email, token or
            expiry check failed.

        Raises:
            InvalidArgumentError: If the new password violates the policy.
            ConcurrentUpdateError: If the account changed concurrently.
        """
        self.password_validator.enforce(new_password)
        if not email or not token:
            return False

        account = await self.reset_tokens.redeem(email, token, new_password, now=now)
        if account is None:
            return False

        await self._audit_user_action(account.id, AuditAction.PASSWORD_RESET, ip_address=ip_address)
        return True

    # ------------------------------------------------------------------
    # External login
    # ------------------------------------------------------------------

    async def external_login(
        self,
        provider_name: str,
        assertion: str,
        ip_address: str | None = None,
        now: datetime | None = None,
    ) -> AuthResult:
        """Log in with an identity assertion from an external provider.

        Raises:
            UnsupportedProviderError: If the provider is not configured.
            AssertionInvalidError: If the assertion fails verification.
            InvalidCredentialsError: If the matched account is deactivated.
        """
        bridged = await self.identity_bridge.resolve(provider_name, assertion)
        account = bridged.account
        if not account.is_active:
            logger.info("External login rejected: account inactive", account_id=account.id)
            raise InvalidCredentialsError()

        role = await self.role_resolver.resolve(account.id)
        summary = _summary(account, role)
        issued = self.token_service.issue(account.id, role, email=account.email, now=now)
        logger.info(
            "External login succeeded",
            account_id=account.id,
            provider=bridged.identity.provider,
            created=bridged.created,
        )

        if bridged.created:
            await self._audit_entity_change(
                AuditAction.CREATE, account.id, None, _snapshot(account), ip_address=ip_address
            )
        await self._audit_user_action(
            account.id,
            AuditAction.EXTERNAL_LOGIN,
            detail=bridged.identity.provider,
            ip_address=ip_address,
        )
        return AuthResult(
            account=summary,
            token=issued.token,
            expires_at=issued.expires_at,
            token_id=issued.token_id,
            created=bridged.created,
        )

    # ------------------------------------------------------------------
    # Account administration
    # ------------------------------------------------------------------

    async def get_account(self, account_id: int) -> AccountSummary:
        """Return the public view of an account.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        account = await self._load(account_id)
        return _summary(account, await self.role_resolver.resolve(account_id))

    async def deactivate_account(
        self, account_id: int, actor_id: int | None = None, ip_address: str | None = None
    ) -> AccountSummary:
        """Block an account from logging in. Issued tokens stay valid until expiry."""
        return await self._set_active(
            account_id, False, AuditAction.DEACTIVATE, actor_id, ip_address
        )

    async def reactivate_account(
        self, account_id: int, actor_id: int | None = None, ip_address: str | None = None
    ) -> AccountSummary:
        """Allow a deactivated account to log in again."""
        return await self._set_active(
            account_id, True, AuditAction.REACTIVATE, actor_id, ip_address
        )

    async def _set_active(
        self,
        account_id: int,
        is_active: bool,
        action: str,
        actor_id: int | None,
        ip_address: str | None,
    ) -> AccountSummary:
        account = await self._load(account_id)
        role = await self.role_resolver.resolve(account_id)
        if account.is_active == is_active:
            return _summary(account, role)

        account.is_active = is_active
        await self._save(account)

        logger.info("Account status changed", account_id=account_id, is_active=is_active)
        await self._audit_entity_change(
            action,
            account_id,
            {"is_active": not is_active},
            {"is_active": is_active},
            actor_id=actor_id,
            ip_address=ip_address,
        )
        return _summary(account, role)

    # ------------------------------------------------------------------
    # Bearer tokens
    # ------------------------------------------------------------------

    def authenticate(self, authorization: str | None, now: datetime | None = None) -> TokenClaims:
        """Validate an ``Authorization: Bearer <token>`` header.

        Raises:
            TokenInvalidError: If the header or token is malformed.
            TokenExpiredError: If the token has expired.
            SignatureMismatchError: If the signature does not verify.
        """
        token = extract_bearer_token(authorization)
        return self.token_service.validate(token, now=now)

    async def logout(self, claims: TokenClaims, ip_address: str | None = None) -> None:
        """Record a logout. The token itself stays valid until it expires."""
        logger.info("Logout", account_id=claims.account_id, token_id=claims.token_id)
        await self._audit_user_action(
            claims.account_id, AuditAction.LOGOUT, detail=claims.token_id, ip_address=ip_address
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load(self, account_id: int) -> AccountModel:
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    async def _save(self, account: AccountModel) -> None:
        """Flush and commit an account, rolling back if a concurrent update won."""
        try:
            await self.account_repo.update(account)
            await self.session.commit()
        except ConcurrentUpdateError:
            await self.session.rollback()
            raise

    async def _audit_user_action(
        self,
        account_id: int | None,
        action: str,
        detail: str | None = None,
        ip_address: str | None = None,
    ) -> None:
        try:
            await self.audit.log_user_action(
                account_id, action, detail=detail, ip_address=ip_address
            )
        except Exception:
            logger.error("Audit logging failed", action=action, account_id=account_id, exc_info=True)

    async def _audit_entity_change(
        self,
        action: str,
        entity_id: int,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
        actor_id: int | None = None,
        ip_address: str | None = None,
    ) -> None:
        try:
            await self.audit.log_entity_change(
                action,
                entity_id,
                old_values,
                new_values,
                actor_id=actor_id,
                ip_address=ip_address,
            )
        except Exception:
            logger.error("Audit logging failed", action=action, account_id=entity_id, exc_info=True)
