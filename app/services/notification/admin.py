"""
Supervisor alert functionality.

System alerts for moderation escalations.
"""

import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat import ChatRoom
from app.models.enums import NotificationType, ProfileRole
from app.repositories.profile_repository import ProfileRepository


class AdminNotificationMixin:
    """
    Mixin for supervisor/admin alerts.

    Relies on ``notify`` from the core service.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize admin notification mixin."""
        self.session = session
        self.profile_repo = ProfileRepository(session)

    async def alert_room_supervisors(
        self,
        room: ChatRoom,
        offender_id: uuid.UUID,
        violation_types: list[str],
        severity: str,
    ) -> int:
        """
        Send a system alert to every supervisor participant of a room.

        Falls back to all active admins when the room has no supervisor.

        Returns:
            Number of alerts created
        """
        participant_ids = [
            p.profile_id for p in room.participants
            if p.is_active and p.profile_id != offender_id
        ]
        recipients = [
            profile for profile in await self.profile_repo.get_many(participant_ids)
            if profile.is_supervisor
        ]
        if not recipients:
            recipients = await self.profile_repo.find_active_by_role(
                ProfileRole.ADMIN.value
            )

        if not recipients:
            logger.warning(
                "No supervisors to alert about moderation escalation",
                extra={"room_id": str(room.id)},
            )
            return 0

        for profile in recipients:
            await self.notify(
                profile.id,
                NotificationType.SYSTEM_ALERT,
                "Repeated contact sharing attempts",
                body=(
                    f"A participant tried to share {', '.join(violation_types)} "
                    f"(severity {severity})."
                ),
                reference_type="chat_room",
                reference_id=room.id,
                data={
                    "offender_id": str(offender_id),
                    "violation_types": violation_types,
                    "severity": severity,
                },
            )

        logger.info(
            f"Moderation alert sent to {len(recipients)} supervisors",
            extra={"room_id": str(room.id), "offender_id": str(offender_id)},
        )
        return len(recipients)
