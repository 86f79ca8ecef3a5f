"""Repository for MigrationRecord model."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ferryman.data.models.migration_record import MigrationRecord
from ferryman.data.repositories.base import BaseRepository


class MigrationRecordRepository(BaseRepository[MigrationRecord]):
    """Repository for MigrationRecord model."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(MigrationRecord, session)

    async def list_recent(self, limit: int = 20, offset: int = 0) -> list[MigrationRecord]:
        """List records, newest first."""
        query = (
            select(MigrationRecord)
            .order_by(MigrationRecord.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_below_score(self, score: int, limit: int | None = None) -> list[MigrationRecord]:
        """List records whose readiness score is below a threshold."""
        query = (
            select(MigrationRecord)
            .where(MigrationRecord.readiness_score < score)
            .order_by(MigrationRecord.readiness_score, MigrationRecord.id)
        )
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
