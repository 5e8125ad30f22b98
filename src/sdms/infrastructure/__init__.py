"""Infrastructure layer - External dependencies and implementations.

This layer contains all external dependencies including:
- Database adapters (SQLAlchemy)
- Password hashing (argon2-cffi) and bearer tokens (PyJWT)
- External identity providers (httpx, JWKS)
"""

from sdms.infrastructure.persistence.database import Base, DatabaseManager

__all__ = [
    "Base",
    "DatabaseManager",
]
