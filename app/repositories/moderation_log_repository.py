"""
Moderation log repository.

Violation counting for rate limits and summaries.
"""

import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.moderation_log import ModerationLog
from app.repositories.base import BaseRepository


class ModerationLogRepository(BaseRepository[ModerationLog]):
    """Moderation log repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ModerationLog, session)

    async def count_since(
        self,
        profile_id: uuid.UUID,
        since: datetime | None = None,
        limit_only: bool = False,
    ) -> int:
        """
        Count violations of a profile.

        Args:
            profile_id: Offender
            since: Only count rows created at or after this moment
            limit_only: Skip rows cleared from rate limiting
        """
        stmt = select(func.count(ModerationLog.id)).where(
            ModerationLog.profile_id == profile_id
        )
        if since is not None:
            stmt = stmt.where(ModerationLog.created_at >= since)
        if limit_only:
            stmt = stmt.where(ModerationLog.counts_toward_limit.is_(True))
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def find_for_profile(
        self,
        profile_id: uuid.UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ModerationLog]:
        return await self.find_all(
            limit=limit, offset=offset, profile_id=profile_id
        )

    async def find_for_project(self, project_id: uuid.UUID) -> list[ModerationLog]:
        return await self.find_all(project_id=project_id)

    async def last_violation_at(self, profile_id: uuid.UUID) -> datetime | None:
        stmt = select(func.max(ModerationLog.created_at)).where(
            ModerationLog.profile_id == profile_id
        )
        result = await self.session.execute(stmt)
        return result.scalar()

    async def release_from_limit(self, profile_id: uuid.UUID) -> int:
        """
        Stop counting existing violations toward rate limits.

        Rows stay for history and summaries.

        Returns:
            Number of rows released
        """
        stmt = (
            update(ModerationLog)
            .where(
                ModerationLog.profile_id == profile_id,
                ModerationLog.counts_toward_limit.is_(True),
            )
            .values(counts_toward_limit=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
