"""Repository for AuditEvent model."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ferryman.data.models.audit_event import AuditAction, AuditEvent
from ferryman.data.repositories.base import BaseRepository


class AuditEventRepository(BaseRepository[AuditEvent]):
    """Repository for AuditEvent model."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(AuditEvent, session)

    async def list_by_action(
        self,
        action: AuditAction,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[AuditEvent]:
        query = select(AuditEvent).where(AuditEvent.action == action).order_by(AuditEvent.id)
        if limit:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_by_record(self, record_id: int) -> list[AuditEvent]:
        query = select(AuditEvent).where(AuditEvent.record_id == record_id).order_by(AuditEvent.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())
