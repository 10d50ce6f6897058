"""
Notification repository.

Data access layer for in-app notifications and push subscriptions.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification, PushSubscription
from app.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """In-app notification repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Notification, session)

    async def find_for_profile(
        self,
        profile_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        filters = {"profile_id": profile_id}
        if unread_only:
            filters["is_read"] = False
        return await self.find_all(limit=limit, offset=offset, **filters)

    async def count_unread(self, profile_id: uuid.UUID) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.profile_id == profile_id,
            Notification.is_read.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def mark_all_read(self, profile_id: uuid.UUID, now: datetime) -> int:
        stmt = (
            update(Notification)
            .where(
                Notification.profile_id == profile_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=now)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0


class PushSubscriptionRepository(BaseRepository[PushSubscription]):
    """Web Push subscription repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(PushSubscription, session)

    async def get_by_endpoint(self, endpoint: str) -> PushSubscription | None:
        return await self.get_by(endpoint=endpoint)

    async def delete_by_endpoint(
        self, profile_id: uuid.UUID, endpoint: str
    ) -> bool:
        stmt = delete(PushSubscription).where(
            PushSubscription.profile_id == profile_id,
            PushSubscription.endpoint == endpoint,
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def delete_stale(self, cutoff: datetime) -> int:
        """
        Delete subscriptions with no successful delivery since cutoff.

        Never-used subscriptions age out by creation time.
        """
        stmt = delete(PushSubscription).where(
            or_(
                PushSubscription.last_success_at < cutoff,
                PushSubscription.last_success_at.is_(None)
                & (PushSubscription.created_at < cutoff),
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
