"""SQLAlchemy models for the SDMS credential tables.

All models inherit from the Base class defined in database.py.
"""

from sdms.infrastructure.persistence.models.account import AccountModel
from sdms.infrastructure.persistence.models.audit_log import AuditLogModel
from sdms.infrastructure.persistence.models.role_profiles import (
    AdministratorProfileModel,
    EmployeeProfileModel,
    FounderProfileModel,
)

__all__ = [
    "AccountModel",
    "AdministratorProfileModel",
    "AuditLogModel",
    "EmployeeProfileModel",
    "FounderProfileModel",
]
