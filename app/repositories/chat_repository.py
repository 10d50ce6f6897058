"""
Chat repository.

Data access layer for chat rooms, participants and messages.
"""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat import ChatMessage, ChatParticipant, ChatRoom
from app.repositories.base import BaseRepository


class ChatRoomRepository(BaseRepository[ChatRoom]):
    """Chat room repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ChatRoom, session)

    async def get_project_room(
        self, project_id: uuid.UUID, room_type: str
    ) -> ChatRoom | None:
        stmt = select(ChatRoom).where(
            ChatRoom.project_id == project_id,
            ChatRoom.room_type == room_type,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_for_profile(self, profile_id: uuid.UUID) -> list[ChatRoom]:
        stmt = (
            select(ChatRoom)
            .join(ChatParticipant, ChatParticipant.room_id == ChatRoom.id)
            .where(
                ChatParticipant.profile_id == profile_id,
                ChatParticipant.is_active.is_(True),
                ChatRoom.is_active.is_(True),
            )
            .order_by(ChatRoom.last_message_at.desc().nulls_last())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().unique().all())


class ChatParticipantRepository(BaseRepository[ChatParticipant]):
    """Chat participant repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ChatParticipant, session)

    async def get_membership(
        self, room_id: uuid.UUID, profile_id: uuid.UUID
    ) -> ChatParticipant | None:
        return await self.get_by(
            room_id=room_id, profile_id=profile_id, is_active=True
        )


class ChatMessageRepository(BaseRepository[ChatMessage]):
    """Chat message repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ChatMessage, session)

    async def find_in_room(
        self,
        room_id: uuid.UUID,
        limit: int,
        before: datetime | None = None,
    ) -> list[ChatMessage]:
        """
        Page of room messages, newest first.

        Args:
            room_id: Room ID
            limit: Page size
            before: Only messages created strictly before this instant

        Returns:
            Messages (deleted ones excluded)
        """
        stmt = select(ChatMessage).where(
            ChatMessage.room_id == room_id,
            ChatMessage.is_deleted.is_(False),
        )
        if before is not None:
            stmt = stmt.where(ChatMessage.created_at < before)
        stmt = stmt.order_by(ChatMessage.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_flagged(
        self, room_id: uuid.UUID | None = None, limit: int = 100
    ) -> list[ChatMessage]:
        stmt = select(ChatMessage).where(ChatMessage.is_flagged.is_(True))
        if room_id is not None:
            stmt = stmt.where(ChatMessage.room_id == room_id)
        stmt = stmt.order_by(ChatMessage.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
