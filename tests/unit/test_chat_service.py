"""Unit tests for ChatService."""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.models.enums import ChatRoomType, ModerationSeverity, ProfileRole, ViolationType
from app.services.chat_service import ChatService
from app.services.moderation import ModerationActionResult, ModerationResult, ViolationMatch
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    ContentViolationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


def _room(**overrides):
    values = {
        "id": uuid.uuid4(),
        "project_id": uuid.uuid4(),
        "is_active": True,
        "participants": [],
        "last_message_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _blocked(notify: bool = False) -> ModerationActionResult:
    result = ModerationResult(
        allowed=False,
        violations=[ViolationMatch(ViolationType.PHONE, "9876543210", 11, 21)],
        message="Sharing phone numbers is not allowed.",
        severity=ModerationSeverity.MEDIUM,
    )
    return ModerationActionResult(
        allowed=False,
        result=result,
        warning_message="Final warning",
        should_notify_admin=notify,
    )


@pytest.fixture
def service(mock_session):
    svc = ChatService(mock_session)
    svc.room_repo = AsyncMock()
    svc.participant_repo = AsyncMock()
    svc.message_repo = AsyncMock()
    svc.message_repo.create.side_effect = lambda **kw: SimpleNamespace(
        id=uuid.uuid4(), created_at=utc_now(), **kw
    )
    svc.profile_repo = AsyncMock()
    svc.moderation = AsyncMock()
    svc.moderation.moderate_message.return_value = ModerationActionResult(
        allowed=True, result=ModerationResult(allowed=True)
    )
    svc.notifications = AsyncMock()
    return svc


class TestSendMessage:
    """Tests for sending chat messages."""

    @pytest.mark.asyncio
    async def test_clean_message_is_stored(self, service):
        room = _room()
        sender = uuid.uuid4()
        service.room_repo.get_by_id.return_value = room
        service.participant_repo.get_membership.return_value = SimpleNamespace()

        message = await service.send_message(room.id, sender, "  Draft is ready  ")

        service.moderation.moderate_message.assert_awaited_once_with(
            "Draft is ready", sender, project_id=room.project_id, room_id=room.id
        )
        assert message.content == "Draft is ready"
        assert message.message_type == "text"
        assert room.last_message_at == message.created_at

    @pytest.mark.asyncio
    async def test_non_member_cannot_send(self, service):
        service.room_repo.get_by_id.return_value = _room()
        service.participant_repo.get_membership.return_value = None

        with pytest.raises(PermissionDeniedError):
            await service.send_message(uuid.uuid4(), uuid.uuid4(), "hi")

    @pytest.mark.asyncio
    async def test_inactive_room(self, service):
        service.room_repo.get_by_id.return_value = _room(is_active=False)

        with pytest.raises(NotFoundError):
            await service.send_message(uuid.uuid4(), uuid.uuid4(), "hi")

    @pytest.mark.asyncio
    async def test_empty_text_needs_file(self, service):
        service.room_repo.get_by_id.return_value = _room()
        service.participant_repo.get_membership.return_value = SimpleNamespace()

        with pytest.raises(ValidationError):
            await service.send_message(uuid.uuid4(), uuid.uuid4(), "   ")

        message = await service.send_message(
            uuid.uuid4(), uuid.uuid4(), "", file_url="https://files.example/a.pdf"
        )
        assert message.content is None
        service.moderation.moderate_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_oversized_message(self, service):
        service.room_repo.get_by_id.return_value = _room()
        service.participant_repo.get_membership.return_value = SimpleNamespace()

        with pytest.raises(ValidationError):
            await service.send_message(uuid.uuid4(), uuid.uuid4(), "x" * 5001)

    @pytest.mark.asyncio
    async def test_blocked_message_is_not_stored(self, service):
        service.room_repo.get_by_id.return_value = _room()
        service.participant_repo.get_membership.return_value = SimpleNamespace()
        service.moderation.moderate_message.return_value = _blocked()

        with pytest.raises(ContentViolationError) as exc_info:
            await service.send_message(uuid.uuid4(), uuid.uuid4(), "call 9876543210")

        error = exc_info.value
        assert error.violation_types == ["phone"]
        assert error.severity == "medium"
        assert error.warning == "Final warning"
        assert error.commit_on_error is True
        service.message_repo.create.assert_not_awaited()
        service.notifications.alert_room_supervisors.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_escalation_alerts_supervisors(self, service):
        room = _room()
        sender = uuid.uuid4()
        service.room_repo.get_by_id.return_value = room
        service.participant_repo.get_membership.return_value = SimpleNamespace()
        service.moderation.moderate_message.return_value = _blocked(notify=True)

        with pytest.raises(ContentViolationError):
            await service.send_message(room.id, sender, "call 9876543210")

        service.notifications.alert_room_supervisors.assert_awaited_once_with(
            room, sender, ["phone"], "medium"
        )


class TestProjectRooms:
    """Tests for project room membership."""

    @pytest.mark.asyncio
    async def test_new_room_gets_current_parties(self, service, make_project):
        project = make_project(supervisor_id=uuid.uuid4())
        service.room_repo.get_project_room.return_value = None
        service.room_repo.create.side_effect = lambda **kw: SimpleNamespace(**kw)

        room = await service.get_or_create_project_room(
            project, ChatRoomType.PROJECT_ALL
        )

        members = {(p.profile_id, p.participant_role) for p in room.participants}
        assert members == {
            (project.client_id, ProfileRole.CLIENT.value),
            (project.supervisor_id, ProfileRole.SUPERVISOR.value),
        }
        assert room.project_id == project.id

    @pytest.mark.asyncio
    async def test_existing_room_adds_new_parties(self, service, make_project):
        project = make_project(supervisor_id=uuid.uuid4(), doer_id=uuid.uuid4())
        room = _room(participants=[SimpleNamespace(profile_id=project.supervisor_id)])
        service.room_repo.get_project_room.return_value = room

        await service.get_or_create_project_room(
            project, ChatRoomType.PROJECT_SUPERVISOR_DOER
        )

        assert [p.profile_id for p in room.participants] == [
            project.supervisor_id,
            project.doer_id,
        ]

    @pytest.mark.asyncio
    async def test_direct_rooms_are_not_project_rooms(self, service, make_project):
        with pytest.raises(ValidationError):
            await service.get_or_create_project_room(
                make_project(), ChatRoomType.DIRECT
            )


class TestFlagging:
    """Tests for supervisor flagging."""

    @pytest.mark.asyncio
    async def test_supervisor_flags_message(self, service, make_profile):
        supervisor = make_profile(ProfileRole.SUPERVISOR)
        message = SimpleNamespace(id=uuid.uuid4(), room_id=uuid.uuid4(), is_flagged=False)
        service.profile_repo.get_by_id.return_value = supervisor
        service.message_repo.get_by_id.return_value = message

        await service.flag_message(message.id, supervisor.id, " shares email ")

        assert message.is_flagged is True
        assert message.flagged_reason == "shares email"
        assert message.flagged_by == supervisor.id

        await service.unflag_message(message.id, supervisor.id)

        assert message.is_flagged is False
        assert message.flagged_by is None

    @pytest.mark.asyncio
    async def test_doer_cannot_flag(self, service, make_profile):
        service.profile_repo.get_by_id.return_value = make_profile(ProfileRole.DOER)

        with pytest.raises(PermissionDeniedError):
            await service.flag_message(uuid.uuid4(), uuid.uuid4(), "reason")

        with pytest.raises(PermissionDeniedError):
            await service.list_flagged(uuid.uuid4())
