"""
Core notification service.

In-app notifications stored in the ``notifications`` table. Realtime
delivery to open clients is done by the hosted database's change feed.
"""

import uuid
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import NOTIFICATION_PAGE_SIZE
from app.models.enums import NotificationType
from app.models.notification import Notification
from app.repositories.notification_repository import NotificationRepository
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import NotFoundError


class NotificationService:
    """
    Core notification service.

    Create, list and mark in-app notifications.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize notification service."""
        self.session = session
        self.notification_repo = NotificationRepository(session)

    async def notify(
        self,
        profile_id: uuid.UUID,
        notification_type: NotificationType,
        title: str,
        body: str | None = None,
        reference_type: str | None = None,
        reference_id: uuid.UUID | None = None,
        action_url: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """
        Create an in-app notification.

        Args:
            profile_id: Recipient
            notification_type: Category (drives the client icon)
            title: Short headline
            body: Optional longer text
            reference_type: Entity kind the notification points to
            reference_id: Entity id
            action_url: Deep link opened on tap
            data: Extra payload for the client

        Returns:
            Created notification
        """
        notification = await self.notification_repo.create(
            profile_id=profile_id,
            notification_type=notification_type.value,
            title=title,
            body=body,
            reference_type=reference_type,
            reference_id=reference_id,
            action_url=action_url,
            data=data,
        )
        logger.debug(
            f"Notification {notification_type.value} queued for {profile_id}",
            extra={"notification_id": str(notification.id)},
        )
        return notification

    async def list_for(
        self,
        profile_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = NOTIFICATION_PAGE_SIZE,
        offset: int = 0,
    ) -> list[Notification]:
        return await self.notification_repo.find_for_profile(
            profile_id, unread_only=unread_only, limit=limit, offset=offset
        )

    async def unread_count(self, profile_id: uuid.UUID) -> int:
        return await self.notification_repo.count_unread(profile_id)

    async def mark_read(
        self, notification_id: uuid.UUID, profile_id: uuid.UUID
    ) -> Notification:
        """Mark one notification read. Other profiles' rows are not found."""
        notification = await self.notification_repo.get_by(
            id=notification_id, profile_id=profile_id
        )
        if notification is None:
            raise NotFoundError("Notification not found")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utc_now()
            await self.session.flush()
        return notification

    async def mark_all_read(self, profile_id: uuid.UUID) -> int:
        updated = await self.notification_repo.mark_all_read(profile_id, utc_now())
        logger.info(f"Marked {updated} notifications read for {profile_id}")
        return updated
