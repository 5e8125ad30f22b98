"""Tests for roles and role profiles."""

import pytest

from sdms.domain.entities.role import (
    AdministratorProfile,
    EmployeeProfile,
    FounderProfile,
    Role,
    role_for_profile,
)


@pytest.mark.parametrize(
    "roles, expected",
    [
        (set(), Role.USER),
        ({Role.FOUNDER}, Role.FOUNDER),
        ({Role.EMPLOYEE, Role.ADMINISTRATOR}, Role.ADMINISTRATOR),
        ({Role.EMPLOYEE, Role.FOUNDER}, Role.FOUNDER),
        ({Role.ADMINISTRATOR, Role.FOUNDER, Role.EMPLOYEE}, Role.ADMINISTRATOR),
    ],
)
def test_most_privileged(roles, expected):
    assert Role.most_privileged(roles) == expected


def test_precedence_order():
    ordered = sorted(Role, key=lambda role: role.precedence)

    assert ordered == [Role.ADMINISTRATOR, Role.FOUNDER, Role.EMPLOYEE, Role.USER]


@pytest.mark.parametrize(
    "profile, expected",
    [
        (None, Role.USER),
        (AdministratorProfile(), Role.ADMINISTRATOR),
        (FounderProfile(company_name="Acme"), Role.FOUNDER),
        (EmployeeProfile(startup_id=1), Role.EMPLOYEE),
    ],
)
def test_role_for_profile(profile, expected):
    assert role_for_profile(profile) == expected


def test_role_values_are_wire_strings():
    assert Role("Founder") is Role.FOUNDER
    assert Role.ADMINISTRATOR.value == "Administrator"
