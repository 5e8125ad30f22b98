"""Audit log repository for append-only audit trail operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sdms.infrastructure.persistence.models.audit_log import AuditLogModel


class AuditLogRepository:
    """Repository for audit log database operations.

    Entries are append-only: no update or delete operations are provided.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, audit_log: AuditLogModel) -> AuditLogModel:
        """Create a new audit log entry.

        Args:
            audit_log: Audit log model to create.

        Returns:
            Created audit log model with its id populated.
        """
        self.session.add(audit_log)
        await self.session.flush()
        return audit_log

    async def list_for_entity(
        self, entity_name: str, entity_id: int
    ) -> list[AuditLogModel]:
        """List audit entries for one entity, oldest first.

        Args:
            entity_name: Entity type (e.g. "Account").
            entity_id: Entity id.

        Returns:
            Audit log models in insertion order.
        """
        result = await self.session.execute(
            select(AuditLogModel)
            .where(
                AuditLogModel.entity_name == entity_name,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(AuditLogModel.id)
        )
        return list(result.scalars().all())
