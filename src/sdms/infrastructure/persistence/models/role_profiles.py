"""SQLAlchemy models for the role profile tables.

Each profile row is keyed by its account id, so an account links at most one
profile of each kind. Deleting the account cascades to its profile.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sdms.infrastructure.persistence.database import Base


class AdministratorProfileModel(Base):
    """SQLAlchemy model for the administrator_profiles table."""

    __tablename__ = "administrator_profiles"

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    admin_level: Mapped[str] = mapped_column(String(20), nullable=False, default="SystemAdmin")
    department: Mapped[str | None] = mapped_column(String(50), nullable=True)

    account: Mapped["AccountModel"] = relationship(  # noqa: F821
        "AccountModel",
        back_populates="administrator_profile",
    )


class FounderProfileModel(Base):
    """SQLAlchemy model for the founder_profiles table."""

    __tablename__ = "founder_profiles"

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    company_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    linkedin_profile: Mapped[str | None] = mapped_column(String(255), nullable=True)

    account: Mapped["AccountModel"] = relationship(  # noqa: F821
        "AccountModel",
        back_populates="founder_profile",
    )


class EmployeeProfileModel(Base):
    """SQLAlchemy model for the employee_profiles table.

    ``startup_id`` references the startup directory, which lives outside
    this package.
    """

    __tablename__ = "employee_profiles"

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    startup_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    position: Mapped[str | None] = mapped_column(String(100), nullable=True)
    employee_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    hire_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    account: Mapped["AccountModel"] = relationship(  # noqa: F821
        "AccountModel",
        back_populates="employee_profile",
    )
