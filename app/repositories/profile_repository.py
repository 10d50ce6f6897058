"""
Profile repository.

Data access layer for Profile model.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.profile import Profile
from app.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Profile repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Profile, session)

    async def get_many(self, ids: list[uuid.UUID]) -> list[Profile]:
        if not ids:
            return []
        stmt = select(Profile).where(Profile.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_active_by_role(self, role: str) -> list[Profile]:
        stmt = select(Profile).where(
            Profile.role == role,
            Profile.is_active.is_(True),
            Profile.is_blocked.is_(False),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
