"""Stat repository using base repository pattern."""
from datetime import datetime

from sqlalchemy import delete

from api.features.stats.entities.stat import StatPage
from api.shared.base import BaseRepository


class StatRepository(BaseRepository[StatPage]):
    """Repository for page-view statistics."""

    model = StatPage

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete every stat row created before ``cutoff``; returns the row count."""
        stmt = (
            delete(StatPage)
            .where(StatPage.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount or 0
