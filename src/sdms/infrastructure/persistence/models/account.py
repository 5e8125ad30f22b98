"""SQLAlchemy model for the accounts table.

Accounts hold credentials and status. The effective role comes from the
linked profile row; the ``role`` column is a derived convenience copy.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sdms.infrastructure.persistence.database import Base, utcnow


class AccountModel(Base):
    """SQLAlchemy model for the accounts table.

    Attributes:
        id: Primary key (auto-incrementing integer, immutable).
        email: Lower-cased email address, unique.
        username: Denormalised convenience name.
        name: Display name.
        phone_number: Optional phone number.
        password_hash: Raw password digest.
        password_salt: Per-account random salt.
        role: Derived copy of the effective role. Never trusted for privilege decisions.
        is_active: Whether the account can log in.
        reset_token_hash: SHA-256 hex digest of the live reset token, if any.
        reset_token_expires_at: Expiry of the live reset token, if any.
        version: Row version for optimistic concurrency.
        created_at: Timestamp when the account was created.
        updated_at: Timestamp when the account was last updated.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Lower-cased email address",
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    password_hash: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    password_salt: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="User",
        comment="Derived from the profile linkage",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reset_token_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    # Relationships
    administrator_profile: Mapped[Optional["AdministratorProfileModel"]] = relationship(  # noqa: F821
        "AdministratorProfileModel",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
    founder_profile: Mapped[Optional["FounderProfileModel"]] = relationship(  # noqa: F821
        "FounderProfileModel",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
    employee_profile: Mapped[Optional["EmployeeProfileModel"]] = relationship(  # noqa: F821
        "EmployeeProfileModel",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, email={self.email})>"
