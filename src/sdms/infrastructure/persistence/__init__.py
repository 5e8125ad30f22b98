"""Persistence layer: SQLAlchemy models, repositories and session management."""

from sdms.infrastructure.persistence.database import Base, DatabaseManager, as_utc, utcnow

__all__ = ["Base", "DatabaseManager", "as_utc", "utcnow"]
