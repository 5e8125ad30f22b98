"""SQLAlchemy model for the audit_logs table.

Rows record user actions (login, password change) and entity changes
(create, update) performed through the credential authority.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sdms.infrastructure.persistence.database import Base, utcnow


class AuditLogModel(Base):
    """SQLAlchemy model for the audit_logs table.

    Attributes:
        id: Primary key (auto-incrementing).
        actor_id: Account that performed the action, NULL for system actions.
        action: Action name (Login, Create, Update, PasswordChange, ...).
        entity_name: Affected entity type.
        entity_id: Affected entity id.
        old_values: JSON snapshot before the change.
        new_values: JSON snapshot after the change, or free-text detail.
        ip_address: Client IP address when known.
        occurred_at: Timestamp when the action occurred (UTC).
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_name: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    old_values: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_values: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(50), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_name", "entity_id"),
        Index("ix_audit_logs_actor", "actor_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action}, entity_id={self.entity_id})>"
