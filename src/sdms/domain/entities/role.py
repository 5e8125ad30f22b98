"""Roles and role profiles.

An account carries at most one role profile. The profile kind, not a stored
string, decides the account's effective role.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Effective role of an account.

    Declaration order is precedence order: when malformed data links more
    than one profile to an account, the earliest member wins.
    """

    ADMINISTRATOR = "Administrator"
    FOUNDER = "Founder"
    EMPLOYEE = "Employee"
    USER = "User"

    @property
    def precedence(self) -> int:
        """Lower value means more privileged."""
        return list(Role).index(self)

    @classmethod
    def most_privileged(cls, roles: "set[Role] | list[Role]") -> "Role":
        """Pick the most privileged role from a collection, USER if empty."""
        if not roles:
            return cls.USER
        return min(roles, key=lambda role: role.precedence)


@dataclass(frozen=True)
class AdministratorProfile:
    """Profile data for an administrator account.

    Attributes:
        admin_level: Administrative tier (e.g. SuperAdmin, SystemAdmin).
        department: Optional department name.
    """

    admin_level: str = "SystemAdmin"
    department: str | None = None

    @property
    def role(self) -> Role:
        return Role.ADMINISTRATOR


@dataclass(frozen=True)
class FounderProfile:
    """Profile data for a startup founder account.

    Attributes:
        company_name: Founder's company name (unknown for external sign-ups).
        bio: Optional short biography.
        linkedin_profile: Optional LinkedIn profile URL.
    """

    company_name: str | None = None
    bio: str | None = None
    linkedin_profile: str | None = None

    @property
    def role(self) -> Role:
        return Role.FOUNDER


@dataclass(frozen=True)
class EmployeeProfile:
    """Profile data for an employee account.

    Attributes:
        startup_id: Identifier of the startup employing the account.
        position: Optional job title.
        employee_role: Optional functional role within the startup.
        hire_date: Optional hire date.
    """

    startup_id: int
    position: str | None = None
    employee_role: str | None = None
    hire_date: datetime | None = None

    @property
    def role(self) -> Role:
        return Role.EMPLOYEE


RoleProfile = AdministratorProfile | FounderProfile | EmployeeProfile


def role_for_profile(profile: RoleProfile | None) -> Role:
    """Return the role a profile grants, USER for no profile."""
    if profile is None:
        return Role.USER
    return profile.role
