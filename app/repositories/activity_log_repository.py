"""
Activity log repository.
"""

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity_log import ActivityLog
from app.repositories.base import BaseRepository


class ActivityLogRepository(BaseRepository[ActivityLog]):
    """Audit trail repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ActivityLog, session)

    async def log(
        self,
        profile_id: uuid.UUID,
        action: str,
        category: str,
        description: str | None = None,
        extra_data: dict[str, Any] | None = None,
    ) -> ActivityLog:
        return await self.create(
            profile_id=profile_id,
            action=action,
            action_category=category,
            description=description,
            extra_data=extra_data,
        )
