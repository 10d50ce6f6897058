"""
Chat service.

Project rooms, message sending with moderation and manual flagging by
supervisors. Realtime delivery is left to the hosted database.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import CHAT_MESSAGE_MAX_LENGTH, CHAT_PAGE_SIZE
from app.models.chat import ChatMessage, ChatParticipant, ChatRoom
from app.models.enums import ChatRoomType, MessageType, ProfileRole
from app.models.project import Project
from app.repositories.chat_repository import (
    ChatMessageRepository,
    ChatParticipantRepository,
    ChatRoomRepository,
)
from app.repositories.profile_repository import ProfileRepository
from app.services.base_service import BaseService
from app.services.moderation import ModerationService
from app.services.notification import NotificationService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    ContentViolationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.validators import validate_text


# Which project parties join which room
ROOM_MEMBERS: dict[ChatRoomType, tuple[str, ...]] = {
    ChatRoomType.PROJECT_USER_SUPERVISOR: ("client_id", "supervisor_id"),
    ChatRoomType.PROJECT_SUPERVISOR_DOER: ("supervisor_id", "doer_id"),
    ChatRoomType.PROJECT_ALL: ("client_id", "supervisor_id", "doer_id"),
}

PARTICIPANT_ROLES = {
    "client_id": ProfileRole.CLIENT.value,
    "supervisor_id": ProfileRole.SUPERVISOR.value,
    "doer_id": ProfileRole.DOER.value,
}


class ChatService(BaseService):
    """Chat rooms and messages."""

    def __init__(
        self, session: AsyncSession, redis_client: Any | None = None
    ) -> None:
        super().__init__(session)
        self.room_repo = ChatRoomRepository(session)
        self.participant_repo = ChatParticipantRepository(session)
        self.message_repo = ChatMessageRepository(session)
        self.profile_repo = ProfileRepository(session)
        self.moderation = ModerationService(session, redis_client)
        self.notifications = NotificationService(session)

    async def get_or_create_project_room(
        self, project: Project, room_type: ChatRoomType
    ) -> ChatRoom:
        """
        Project room of the given type with every current party in it.

        Parties assigned after the room was created (a doer, a new
        supervisor) are added on the next call.
        """
        if room_type not in ROOM_MEMBERS:
            raise ValidationError(f"{room_type.value} is not a project room type")

        members = [
            (getattr(project, attribute), PARTICIPANT_ROLES[attribute])
            for attribute in ROOM_MEMBERS[room_type]
            if getattr(project, attribute) is not None
        ]

        room = await self.room_repo.get_project_room(project.id, room_type.value)
        if room is None:
            room = await self.room_repo.create(
                room_type=room_type.value,
                name=f"{project.project_number} {project.title}"[:255],
                project_id=project.id,
                participants=[
                    ChatParticipant(profile_id=profile_id, participant_role=role)
                    for profile_id, role in members
                ],
            )
            self.logger.info(
                f"Created {room_type.value} room for {project.project_number}"
            )
            return room

        current = {p.profile_id for p in room.participants}
        for profile_id, role in members:
            if profile_id in current:
                continue
            room.participants.append(
                ChatParticipant(
                    room_id=room.id, profile_id=profile_id, participant_role=role
                )
            )
        await self.session.flush()
        return room

    async def _get_room_as_member(
        self, room_id: uuid.UUID, profile_id: uuid.UUID
    ) -> tuple[ChatRoom, ChatParticipant]:
        room = await self.room_repo.get_by_id(room_id)
        if room is None or not room.is_active:
            raise NotFoundError("Chat room not found")
        membership = await self.participant_repo.get_membership(room_id, profile_id)
        if membership is None:
            raise PermissionDeniedError("You are not a participant of this chat")
        return room, membership

    async def list_rooms(self, profile_id: uuid.UUID) -> list[ChatRoom]:
        return await self.room_repo.find_for_profile(profile_id)

    async def send_message(
        self,
        room_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        file_url: str | None = None,
    ) -> ChatMessage:
        """
        Moderate and store a message.

        Blocked content is never stored as a message. The violation is
        logged, supervisors are alerted on escalation and
        ContentViolationError carries the user-facing explanation.

        Raises:
            PermissionDeniedError: Sender is not in the room
            ValidationError: Empty or oversized message
            ContentViolationError: Message contains contact details
        """
        room, _ = await self._get_room_as_member(room_id, sender_id)

        valid, text, error = validate_text(
            content,
            max_length=CHAT_MESSAGE_MAX_LENGTH,
            field="Message",
            required=file_url is None,
        )
        if not valid:
            raise ValidationError(error)

        if text:
            outcome = await self.moderation.moderate_message(
                text, sender_id, project_id=room.project_id, room_id=room.id
            )
            if not outcome.allowed:
                violation_types = [t.value for t in outcome.result.violation_types]
                if outcome.should_notify_admin:
                    await self.notifications.alert_room_supervisors(
                        room,
                        sender_id,
                        violation_types,
                        outcome.result.severity.value,
                    )
                raise ContentViolationError(
                    outcome.result.message,
                    violation_types=violation_types,
                    severity=outcome.result.severity.value,
                    warning=outcome.warning_message,
                    rate_limited=outcome.rate_limited,
                )

        message = await self.message_repo.create(
            room_id=room.id,
            sender_id=sender_id,
            message_type=message_type.value,
            content=text,
            file_url=file_url,
        )
        room.last_message_at = message.created_at
        await self.session.flush()
        return message

    async def list_messages(
        self,
        room_id: uuid.UUID,
        profile_id: uuid.UUID,
        limit: int = CHAT_PAGE_SIZE,
        before: datetime | None = None,
    ) -> list[ChatMessage]:
        await self._get_room_as_member(room_id, profile_id)
        return await self.message_repo.find_in_room(
            room_id, limit=min(limit, CHAT_PAGE_SIZE), before=before
        )

    async def mark_room_read(
        self, room_id: uuid.UUID, profile_id: uuid.UUID
    ) -> ChatParticipant:
        _, membership = await self._get_room_as_member(room_id, profile_id)
        membership.last_read_at = utc_now()
        await self.session.flush()
        return membership

    async def _require_supervisor(self, profile_id: uuid.UUID) -> None:
        profile = await self.profile_repo.get_by_id(profile_id)
        if profile is None or not profile.is_supervisor:
            raise PermissionDeniedError("Only supervisors can moderate messages")

    async def flag_message(
        self, message_id: uuid.UUID, supervisor_id: uuid.UUID, reason: str
    ) -> ChatMessage:
        """Manually flag a stored message that slipped past the detector."""
        await self._require_supervisor(supervisor_id)
        valid, reason_text, error = validate_text(
            reason, max_length=500, field="Reason"
        )
        if not valid:
            raise ValidationError(error)

        message = self._require(
            await self.message_repo.get_by_id(message_id), "Message not found"
        )
        message.is_flagged = True
        message.flagged_reason = reason_text
        message.flagged_by = supervisor_id
        await self.session.flush()

        self.logger.info(
            f"Message {message_id} flagged by {supervisor_id}",
            extra={"room_id": str(message.room_id)},
        )
        return message

    async def unflag_message(
        self, message_id: uuid.UUID, supervisor_id: uuid.UUID
    ) -> ChatMessage:
        await self._require_supervisor(supervisor_id)
        message = self._require(
            await self.message_repo.get_by_id(message_id), "Message not found"
        )
        message.is_flagged = False
        message.flagged_reason = None
        message.flagged_by = None
        await self.session.flush()
        return message

    async def list_flagged(
        self, supervisor_id: uuid.UUID, room_id: uuid.UUID | None = None
    ) -> list[ChatMessage]:
        await self._require_supervisor(supervisor_id)
        return await self.message_repo.find_flagged(room_id)
