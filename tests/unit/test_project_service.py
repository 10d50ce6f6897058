"""Unit tests for the project lifecycle service."""

import uuid
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, call

import pytest

from app.models.enums import (
    ChatRoomType,
    ProfileRole,
    ProjectStatus,
    QuoteStatus,
    TransactionType,
)
from app.services.project import ProjectService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


def _echo(**kwargs):
    return SimpleNamespace(id=uuid.uuid4(), **kwargs)


@pytest.fixture
def payment_service():
    return AsyncMock()


@pytest.fixture
def service(mock_session, payment_service):
    svc = ProjectService(mock_session, payment_service=payment_service)
    svc.project_repo = AsyncMock()
    svc.project_repo.create.side_effect = _echo
    svc.quote_repo = AsyncMock()
    svc.quote_repo.create.side_effect = _echo
    svc.profile_repo = AsyncMock()
    svc.wallet_service = AsyncMock()
    svc.chat_service = AsyncMock()
    svc.notifications = AsyncMock()
    return svc


class TestCreateProject:
    """Tests for drafting projects."""

    @pytest.mark.asyncio
    async def test_client_creates_draft(self, service, make_profile):
        client = make_profile(ProfileRole.CLIENT)
        service.profile_repo.get_by_id.return_value = client
        service.project_repo.next_project_number.return_value = "AX-00007"
        deadline = (utc_now() + timedelta(days=5)).replace(tzinfo=None)

        project = await service.create_project(
            client.id, "  Thesis chapter 2 ", deadline, word_count=3000
        )

        assert project.project_number == "AX-00007"
        assert project.title == "Thesis chapter 2"
        assert project.status == ProjectStatus.DRAFT.value
        assert project.client_id == client.id
        assert project.deadline.tzinfo is not None

    @pytest.mark.asyncio
    async def test_only_clients_create(self, service, make_profile):
        service.profile_repo.get_by_id.return_value = make_profile(ProfileRole.DOER)

        with pytest.raises(PermissionDeniedError):
            await service.create_project(
                uuid.uuid4(), "Essay", utc_now() + timedelta(days=2)
            )

    @pytest.mark.asyncio
    async def test_blocked_profile(self, service, make_profile):
        service.profile_repo.get_by_id.return_value = make_profile(is_blocked=True)

        with pytest.raises(PermissionDeniedError):
            await service.create_project(
                uuid.uuid4(), "Essay", utc_now() + timedelta(days=2)
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"deadline": utc_now() - timedelta(hours=1)},
            {"complexity": "extreme"},
            {"word_count": 0},
            {"title": "   "},
        ],
    )
    async def test_invalid_input(self, service, make_profile, overrides):
        service.profile_repo.get_by_id.return_value = make_profile()
        values = {"title": "Essay", "deadline": utc_now() + timedelta(days=2)}
        values.update(overrides)

        with pytest.raises(ValidationError):
            await service.create_project(uuid.uuid4(), **values)

        service.project_repo.create.assert_not_awaited()


class TestClientFlow:
    """Tests for client operations."""

    @pytest.mark.asyncio
    async def test_submit_requires_owner(self, service, make_project):
        service.project_repo.get_for_update.return_value = make_project()

        with pytest.raises(NotFoundError):
            await service.submit_project(uuid.uuid4(), uuid.uuid4())

    @pytest.mark.asyncio
    async def test_accept_quote_copies_amounts(self, service, make_project):
        project = make_project(ProjectStatus.QUOTED)
        quote = SimpleNamespace(
            status=QuoteStatus.SENT.value,
            valid_until=utc_now() + timedelta(hours=10),
            user_amount=Decimal("1180.00"),
            doer_amount=Decimal("650.00"),
            supervisor_amount=Decimal("150.00"),
            platform_amount=Decimal("200.00"),
        )
        service.project_repo.get_for_update.return_value = project
        service.quote_repo.get_latest_for_project.return_value = quote

        await service.accept_quote(project.id, project.client_id)

        assert project.status == ProjectStatus.PAYMENT_PENDING.value
        assert quote.status == QuoteStatus.ACCEPTED.value
        assert project.user_amount == Decimal("1180.00")
        assert project.doer_payout == Decimal("650.00")
        assert project.supervisor_commission == Decimal("150.00")
        assert project.platform_fee == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_expired_quote_cannot_be_accepted(self, service, make_project):
        project = make_project(ProjectStatus.QUOTED)
        service.project_repo.get_for_update.return_value = project
        service.quote_repo.get_latest_for_project.return_value = SimpleNamespace(
            status=QuoteStatus.SENT.value,
            valid_until=utc_now() - timedelta(minutes=1),
        )

        with pytest.raises(ValidationError, match="expired"):
            await service.accept_quote(project.id, project.client_id)

        assert project.status == ProjectStatus.QUOTED.value

    @pytest.mark.asyncio
    async def test_reject_quote_returns_to_analysis(self, service, make_project):
        project = make_project(ProjectStatus.QUOTED)
        quote = SimpleNamespace(status=QuoteStatus.SENT.value)
        service.project_repo.get_for_update.return_value = project
        service.quote_repo.get_latest_for_project.return_value = quote

        await service.reject_quote(project.id, project.client_id)

        assert project.status == ProjectStatus.ANALYZING.value
        assert quote.status == QuoteStatus.REJECTED.value

    @pytest.mark.asyncio
    async def test_request_revision(self, service, make_project):
        project = make_project(ProjectStatus.DELIVERED)
        service.project_repo.get_for_update.return_value = project

        await service.request_revision(project.id, project.client_id, "Add sources")

        assert project.status == ProjectStatus.REVISION_REQUESTED.value
        assert project.revision_count == 1
        assert project.qc_feedback == "Add sources"
        service.notifications.notify_revision_requested.assert_awaited_once_with(project)

    @pytest.mark.asyncio
    async def test_complete_pays_doer_and_supervisor(self, service, make_project):
        project = make_project(
            ProjectStatus.DELIVERED,
            doer_id=uuid.uuid4(),
            supervisor_id=uuid.uuid4(),
            doer_payout=Decimal("780.00"),
            supervisor_commission=Decimal("180.00"),
        )
        service.project_repo.get_for_update.return_value = project

        await service.complete_project(project.id, project.client_id)

        assert project.status == ProjectStatus.COMPLETED.value
        assert project.completed_at is not None
        credits = service.wallet_service.credit.await_args_list
        assert [c.args for c in credits] == [
            (project.doer_id, Decimal("780.00"), TransactionType.PROJECT_EARNING),
            (project.supervisor_id, Decimal("180.00"), TransactionType.COMMISSION),
        ]


class TestCancellation:
    """Tests for cancelling projects."""

    @pytest.mark.asyncio
    async def test_unpaid_project_is_cancelled(
        self, service, payment_service, make_project
    ):
        project = make_project(ProjectStatus.QUOTED)
        service.project_repo.get_for_update.return_value = project

        await service.cancel_project(project.id, project.client_id)

        assert project.status == ProjectStatus.CANCELLED.value
        payment_service.refund_project_payment.assert_not_awaited()
        service.quote_repo.supersede_open_quotes.assert_awaited_once_with(project.id)

    @pytest.mark.asyncio
    async def test_paid_project_is_refunded(
        self, service, payment_service, make_project
    ):
        project = make_project(ProjectStatus.IN_PROGRESS)
        service.project_repo.get_for_update.return_value = project

        await service.cancel_project(project.id, project.client_id, "Changed plans")

        assert project.status == ProjectStatus.REFUNDED.value
        payment_service.refund_project_payment.assert_awaited_once_with(
            project, "Changed plans"
        )

    @pytest.mark.asyncio
    async def test_delivered_project_cannot_be_cancelled(self, service, make_project):
        project = make_project(ProjectStatus.DELIVERED)
        service.project_repo.get_for_update.return_value = project

        with pytest.raises(InvalidStateTransitionError):
            await service.cancel_project(project.id, project.client_id)

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel(self, service, make_project, make_profile):
        service.project_repo.get_for_update.return_value = make_project()
        service.profile_repo.get_by_id.return_value = make_profile(ProfileRole.DOER)

        with pytest.raises(NotFoundError):
            await service.cancel_project(uuid.uuid4(), uuid.uuid4())


class TestSupervisorFlow:
    """Tests for supervisor operations."""

    @pytest.mark.asyncio
    async def test_quote_claims_project_and_prices_it(
        self, service, make_profile, make_project
    ):
        supervisor = make_profile(ProfileRole.SUPERVISOR)
        project = make_project(ProjectStatus.SUBMITTED)
        service.profile_repo.get_by_id.return_value = supervisor
        service.project_repo.get_for_update.return_value = project

        quote = await service.create_quote(project.id, supervisor.id, complexity="medium")

        assert project.supervisor_id == supervisor.id
        assert project.status == ProjectStatus.QUOTED.value
        assert project.complexity == "medium"
        assert quote.status == QuoteStatus.SENT.value
        assert quote.base_price == Decimal("1000.00")
        assert quote.user_amount == Decimal("1416.00")
        assert quote.valid_until > utc_now() + timedelta(hours=47)
        service.quote_repo.supersede_open_quotes.assert_awaited_once_with(project.id)
        service.chat_service.get_or_create_project_room.assert_awaited_once_with(
            project, ChatRoomType.PROJECT_USER_SUPERVISOR
        )

    @pytest.mark.asyncio
    async def test_other_supervisors_project(self, service, make_profile, make_project):
        supervisor = make_profile(ProfileRole.SUPERVISOR)
        project = make_project(ProjectStatus.SUBMITTED, supervisor_id=uuid.uuid4())
        service.profile_repo.get_by_id.return_value = supervisor
        service.project_repo.get_for_update.return_value = project

        with pytest.raises(PermissionDeniedError):
            await service.start_analysis(project.id, supervisor.id)

    @pytest.mark.asyncio
    async def test_admin_may_act_on_any_project(
        self, service, make_profile, make_project
    ):
        admin = make_profile(ProfileRole.ADMIN)
        project = make_project(ProjectStatus.SUBMITTED, supervisor_id=uuid.uuid4())
        service.profile_repo.get_by_id.return_value = admin
        service.project_repo.get_for_update.return_value = project

        await service.start_analysis(project.id, admin.id)

        assert project.status == ProjectStatus.ANALYZING.value

    @pytest.mark.asyncio
    async def test_client_is_not_a_supervisor(self, service, make_profile):
        service.profile_repo.get_by_id.return_value = make_profile(ProfileRole.CLIENT)

        with pytest.raises(PermissionDeniedError):
            await service.start_analysis(uuid.uuid4(), uuid.uuid4())

    @pytest.mark.asyncio
    async def test_assign_doer_opens_rooms(self, service, make_profile, make_project):
        supervisor = make_profile(ProfileRole.SUPERVISOR)
        doer = make_profile(ProfileRole.DOER)
        project = make_project(ProjectStatus.PAID, supervisor_id=supervisor.id)
        service.profile_repo.get_by_id.side_effect = [doer, supervisor]
        service.project_repo.get_for_update.return_value = project

        await service.assign_doer(project.id, supervisor.id, doer.id)

        assert project.status == ProjectStatus.ASSIGNED.value
        assert project.doer_id == doer.id
        assert service.chat_service.get_or_create_project_room.await_args_list == [
            call(project, ChatRoomType.PROJECT_SUPERVISOR_DOER),
            call(project, ChatRoomType.PROJECT_ALL),
        ]
        service.notifications.notify_task_assigned.assert_awaited_once_with(project)

    @pytest.mark.asyncio
    async def test_unactivated_doer(self, service, make_profile):
        service.profile_repo.get_by_id.return_value = make_profile(
            ProfileRole.DOER, is_activated=False
        )

        with pytest.raises(ValidationError):
            await service.assign_doer(uuid.uuid4(), uuid.uuid4(), uuid.uuid4())

    @pytest.mark.asyncio
    async def test_qc_approval_delivers(self, service, make_profile, make_project):
        supervisor = make_profile(ProfileRole.SUPERVISOR)
        project = make_project(
            ProjectStatus.SUBMITTED_FOR_QC, supervisor_id=supervisor.id
        )
        service.profile_repo.get_by_id.return_value = supervisor
        service.project_repo.get_for_update.return_value = project

        await service.qc_review(project.id, supervisor.id, approve=True)

        assert project.status == ProjectStatus.DELIVERED.value
        assert project.delivered_at is not None
        service.notifications.notify_qc_result.assert_awaited_once_with(project, True)

    @pytest.mark.asyncio
    async def test_qc_rejection_needs_feedback(
        self, service, make_profile, make_project
    ):
        supervisor = make_profile(ProfileRole.SUPERVISOR)
        project = make_project(
            ProjectStatus.QC_IN_PROGRESS, supervisor_id=supervisor.id
        )
        service.profile_repo.get_by_id.return_value = supervisor
        service.project_repo.get_for_update.return_value = project

        with pytest.raises(ValidationError):
            await service.qc_review(project.id, supervisor.id, approve=False)

        await service.qc_review(
            project.id, supervisor.id, approve=False, feedback="Citations missing"
        )
        assert project.status == ProjectStatus.QC_REJECTED.value
        assert project.qc_feedback == "Citations missing"


class TestDoerFlow:
    """Tests for doer operations."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "current, expected",
        [
            (ProjectStatus.ASSIGNED, ProjectStatus.IN_PROGRESS),
            (ProjectStatus.QC_REJECTED, ProjectStatus.IN_PROGRESS),
            (ProjectStatus.REVISION_REQUESTED, ProjectStatus.IN_REVISION),
        ],
    )
    async def test_start_work(self, service, make_project, current, expected):
        doer_id = uuid.uuid4()
        project = make_project(current, doer_id=doer_id)
        service.project_repo.get_for_update.return_value = project

        await service.start_work(project.id, doer_id)

        assert project.status == expected.value

    @pytest.mark.asyncio
    async def test_other_doer(self, service, make_project):
        service.project_repo.get_for_update.return_value = make_project(
            ProjectStatus.ASSIGNED, doer_id=uuid.uuid4()
        )

        with pytest.raises(NotFoundError):
            await service.start_work(uuid.uuid4(), uuid.uuid4())

    @pytest.mark.asyncio
    async def test_submit_work_notifies(self, service, make_project):
        doer_id = uuid.uuid4()
        project = make_project(ProjectStatus.IN_REVISION, doer_id=doer_id)
        service.project_repo.get_for_update.return_value = project

        await service.submit_work(project.id, doer_id)

        assert project.status == ProjectStatus.SUBMITTED_FOR_QC.value
        service.notifications.notify_work_submitted.assert_awaited_once_with(project)


class TestQuoteExpiry:
    @pytest.mark.asyncio
    async def test_expired_quotes_reopen_analysis(self, service, make_project):
        waiting = make_project(ProjectStatus.QUOTED)
        moved_on = make_project(ProjectStatus.CANCELLED)
        quotes = [
            SimpleNamespace(project_id=waiting.id, status=QuoteStatus.SENT.value),
            SimpleNamespace(project_id=moved_on.id, status=QuoteStatus.SENT.value),
        ]
        service.quote_repo.find_expired.return_value = quotes
        service.project_repo.get_for_update.side_effect = [waiting, moved_on]

        expired = await service.expire_stale_quotes()

        assert expired == 2
        assert all(q.status == QuoteStatus.EXPIRED.value for q in quotes)
        assert waiting.status == ProjectStatus.ANALYZING.value
        assert moved_on.status == ProjectStatus.CANCELLED.value
