"""Unit tests for in-app notifications, push subscriptions and alerts."""

import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.models.enums import NotificationType, ProfileRole, ProjectStatus
from app.services.notification import NotificationService
from app.utils.exceptions import NotFoundError, ValidationError


def _echo(**kwargs):
    return SimpleNamespace(id=uuid.uuid4(), **kwargs)


@pytest.fixture
def service(mock_session):
    svc = NotificationService(mock_session)
    svc.notification_repo = AsyncMock()
    svc.notification_repo.create.side_effect = _echo
    svc.push_repo = AsyncMock()
    svc.profile_repo = AsyncMock()
    return svc


def _room(*participants):
    return SimpleNamespace(
        id=uuid.uuid4(),
        participants=[
            SimpleNamespace(profile_id=pid, is_active=active)
            for pid, active in participants
        ],
    )


class TestCoreNotifications:
    """Create, count and mark notifications."""

    @pytest.mark.asyncio
    async def test_notify_stores_enum_value(self, service):
        profile_id = uuid.uuid4()

        notification = await service.notify(
            profile_id, NotificationType.SYSTEM_ALERT, "Hello", body="World"
        )

        assert notification.notification_type == "system_alert"
        assert notification.profile_id == profile_id
        assert notification.body == "World"

    @pytest.mark.asyncio
    async def test_unread_count(self, service):
        service.notification_repo.count_unread.return_value = 4

        assert await service.unread_count(uuid.uuid4()) == 4

    @pytest.mark.asyncio
    async def test_mark_read_sets_timestamp(self, service, mock_session):
        row = SimpleNamespace(is_read=False, read_at=None)
        service.notification_repo.get_by.return_value = row

        result = await service.mark_read(uuid.uuid4(), uuid.uuid4())

        assert result.is_read is True
        assert result.read_at is not None
        mock_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mark_read_already_read_is_noop(self, service, mock_session):
        service.notification_repo.get_by.return_value = SimpleNamespace(
            is_read=True, read_at="earlier"
        )

        result = await service.mark_read(uuid.uuid4(), uuid.uuid4())

        assert result.read_at == "earlier"
        mock_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mark_read_foreign_notification(self, service):
        service.notification_repo.get_by.return_value = None

        with pytest.raises(NotFoundError):
            await service.mark_read(uuid.uuid4(), uuid.uuid4())


class TestPushSubscriptions:
    """Web Push subscription upserts."""

    @pytest.mark.asyncio
    async def test_subscribe_creates(self, service):
        service.push_repo.get_by_endpoint.return_value = None
        service.push_repo.create.side_effect = _echo

        sub = await service.subscribe(
            uuid.uuid4(), "https://push.example.com/abc", "key", "auth"
        )

        assert sub.endpoint == "https://push.example.com/abc"

    @pytest.mark.asyncio
    async def test_subscribe_moves_endpoint_to_new_profile(self, service):
        existing = SimpleNamespace(
            profile_id=uuid.uuid4(), p256dh="old", auth="old", user_agent=None
        )
        service.push_repo.get_by_endpoint.return_value = existing
        new_owner = uuid.uuid4()

        sub = await service.subscribe(
            new_owner, "https://push.example.com/abc", "new", "new"
        )

        assert sub is existing
        assert existing.profile_id == new_owner
        assert existing.p256dh == "new"
        service.push_repo.create.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "endpoint, p256dh, auth",
        [
            ("http://push.example.com/abc", "k", "a"),
            ("", "k", "a"),
            ("https://push.example.com/abc", "", "a"),
            ("https://push.example.com/abc", "k", ""),
        ],
    )
    async def test_subscribe_rejects_invalid(self, service, endpoint, p256dh, auth):
        with pytest.raises(ValidationError):
            await service.subscribe(uuid.uuid4(), endpoint, p256dh, auth)

    @pytest.mark.asyncio
    async def test_prune_stale(self, service):
        service.push_repo.delete_stale.return_value = 3

        assert await service.prune_stale(30) == 3
        service.push_repo.delete_stale.assert_awaited_once()


class TestSupervisorAlerts:
    """Moderation escalation alerts."""

    @pytest.mark.asyncio
    async def test_alerts_room_supervisors_only(self, service, make_profile):
        offender = make_profile(ProfileRole.CLIENT)
        supervisor = make_profile(ProfileRole.SUPERVISOR)
        doer = make_profile(ProfileRole.DOER)
        room = _room((offender.id, True), (supervisor.id, True), (doer.id, True))
        service.profile_repo.get_many.return_value = [supervisor, doer]

        sent = await service.alert_room_supervisors(
            room, offender.id, ["phone"], "medium"
        )

        assert sent == 1
        ids = service.profile_repo.get_many.await_args.args[0]
        assert offender.id not in ids
        created = service.notification_repo.create.call_args.kwargs
        assert created["profile_id"] == supervisor.id
        assert created["notification_type"] == "system_alert"
        assert created["data"]["violation_types"] == ["phone"]

    @pytest.mark.asyncio
    async def test_falls_back_to_admins(self, service, make_profile):
        admin = make_profile(ProfileRole.ADMIN)
        room = _room((uuid.uuid4(), True))
        service.profile_repo.get_many.return_value = []
        service.profile_repo.find_active_by_role.return_value = [admin]

        sent = await service.alert_room_supervisors(
            room, uuid.uuid4(), ["email"], "low"
        )

        assert sent == 1
        service.profile_repo.find_active_by_role.assert_awaited_once_with("admin")

    @pytest.mark.asyncio
    async def test_nobody_to_alert(self, service):
        service.profile_repo.get_many.return_value = []
        service.profile_repo.find_active_by_role.return_value = []

        sent = await service.alert_room_supervisors(
            _room(), uuid.uuid4(), ["phone"], "high"
        )

        assert sent == 0
        service.notification_repo.create.assert_not_called()


class TestProjectNotifications:
    """Project lifecycle notifications."""

    @pytest.mark.asyncio
    async def test_quoted_project_notifies_client(self, service, make_project):
        project = make_project(ProjectStatus.QUOTED)

        await service.notify_project_status(project)

        created = service.notification_repo.create.call_args.kwargs
        assert created["profile_id"] == project.client_id
        assert created["notification_type"] == "quote_ready"
        assert created["action_url"] == f"/projects/{project.id}"

    @pytest.mark.asyncio
    async def test_uninteresting_status_is_silent(self, service, make_project):
        await service.notify_project_status(make_project(ProjectStatus.IN_PROGRESS))

        service.notification_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_revision_notifies_supervisor_and_doer(self, service, make_project):
        project = make_project(
            ProjectStatus.REVISION_REQUESTED,
            supervisor_id=uuid.uuid4(),
            doer_id=uuid.uuid4(),
        )

        await service.notify_revision_requested(project)

        recipients = [
            c.kwargs["profile_id"]
            for c in service.notification_repo.create.call_args_list
        ]
        assert recipients == [project.supervisor_id, project.doer_id]

    @pytest.mark.asyncio
    async def test_wallet_top_up_body(self, service):
        await service.notify_payment_received(uuid.uuid4(), Decimal("250"))

        created = service.notification_repo.create.call_args.kwargs
        assert created["reference_type"] == "wallet"
        assert "added to your wallet" in created["body"]

    @pytest.mark.asyncio
    async def test_task_assigned_without_doer_is_silent(self, service, make_project):
        await service.notify_task_assigned(make_project(ProjectStatus.ASSIGNED))

        service.notification_repo.create.assert_not_called()
