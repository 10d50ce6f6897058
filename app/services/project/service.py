"""
Project service.

Lifecycle operations for clients, supervisors and doers. Every status
change goes through the transition map.
"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import COMPLEXITY_MULTIPLIERS, QUOTE_VALIDITY_HOURS
from app.models.enums import (
    ChatRoomType,
    ProfileRole,
    ProjectStatus,
    QuoteStatus,
    ServiceType,
    TransactionType,
)
from app.models.profile import Profile
from app.models.project import Project, ProjectQuote
from app.repositories.profile_repository import ProfileRepository
from app.repositories.project_repository import (
    ProjectQuoteRepository,
    ProjectRepository,
)
from app.services.base_service import BaseService, log_operation
from app.services.chat_service import ChatService
from app.services.notification import NotificationService
from app.services.wallet_service import WalletService
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.validators import validate_positive_int, validate_text

from .pricing import calculate_quote
from .transitions import PAID_STATUSES, apply_transition


class ProjectService(BaseService):
    """Project lifecycle."""

    def __init__(self, session: AsyncSession, payment_service=None) -> None:
        super().__init__(session)
        self.project_repo = ProjectRepository(session)
        self.quote_repo = ProjectQuoteRepository(session)
        self.profile_repo = ProfileRepository(session)
        self.wallet_service = WalletService(session)
        self.chat_service = ChatService(session)
        self.notifications = NotificationService(session)
        self._payment_service = payment_service

    @property
    def payment_service(self):
        # Built on demand: only cancellation of paid projects needs the gateway
        if self._payment_service is None:
            from app.services.payment_service import PaymentService

            self._payment_service = PaymentService(self.session)
        return self._payment_service

    # Lookups

    async def _get_profile(self, profile_id: uuid.UUID) -> Profile:
        profile = await self.profile_repo.get_by_id(profile_id)
        if profile is None or not profile.is_active or profile.is_blocked:
            raise PermissionDeniedError("Profile is not active")
        return profile

    async def _lock_project(self, project_id: uuid.UUID) -> Project:
        return self._require(
            await self.project_repo.get_for_update(project_id), "Project not found"
        )

    async def _lock_as_client(
        self, project_id: uuid.UUID, client_id: uuid.UUID
    ) -> Project:
        project = await self._lock_project(project_id)
        if project.client_id != client_id:
            raise NotFoundError("Project not found")
        return project

    async def _lock_as_supervisor(
        self, project_id: uuid.UUID, supervisor_id: uuid.UUID
    ) -> Project:
        """Supervisor must own the project; unclaimed projects are claimed."""
        profile = await self._get_profile(supervisor_id)
        if not profile.is_supervisor:
            raise PermissionDeniedError("Only supervisors can do this")

        project = await self._lock_project(project_id)
        if project.supervisor_id is None:
            project.supervisor_id = supervisor_id
        elif (
            project.supervisor_id != supervisor_id
            and profile.role != ProfileRole.ADMIN.value
        ):
            raise PermissionDeniedError("Project is handled by another supervisor")
        return project

    async def _lock_as_doer(
        self, project_id: uuid.UUID, doer_id: uuid.UUID
    ) -> Project:
        project = await self._lock_project(project_id)
        if project.doer_id != doer_id:
            raise NotFoundError("Project not found")
        return project

    async def get_project(
        self, project_id: uuid.UUID, profile_id: uuid.UUID
    ) -> Project:
        """A project visible to the caller (party, or any supervisor)."""
        project = self._require(
            await self.project_repo.get_by_id(project_id), "Project not found"
        )
        if project.is_party(profile_id):
            return project
        profile = await self.profile_repo.get_by_id(profile_id)
        if profile is not None and profile.is_supervisor:
            return project
        raise NotFoundError("Project not found")

    async def list_projects_for(
        self,
        profile_id: uuid.UUID,
        status: ProjectStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Project]:
        profile = self._require(
            await self.profile_repo.get_by_id(profile_id), "Profile not found"
        )
        return await self.project_repo.find_for_profile(
            profile_id,
            profile.role,
            status=status.value if status else None,
            limit=limit,
            offset=offset,
        )

    async def get_quotes(
        self, project_id: uuid.UUID, profile_id: uuid.UUID
    ) -> list[ProjectQuote]:
        project = await self.get_project(project_id, profile_id)
        return await self.quote_repo.find_all(project_id=project.id)

    # Client operations

    @log_operation
    async def create_project(
        self,
        client_id: uuid.UUID,
        title: str,
        deadline: datetime,
        description: str | None = None,
        subject: str | None = None,
        service_type: ServiceType = ServiceType.NEW_PROJECT,
        word_count: int | None = None,
        page_count: int | None = None,
        complexity: str = "easy",
    ) -> Project:
        """Create a draft project for a client."""
        profile = await self._get_profile(client_id)
        if not profile.is_client:
            raise PermissionDeniedError("Only clients can create projects")

        valid, title_text, error = validate_text(title, 255, "Title")
        if not valid:
            raise ValidationError(error)
        valid, description_text, error = validate_text(
            description, 10000, "Description", required=False
        )
        if not valid:
            raise ValidationError(error)
        for field, value in (("Word count", word_count), ("Page count", page_count)):
            valid, _, error = validate_positive_int(value, field)
            if not valid:
                raise ValidationError(error)
        if complexity not in COMPLEXITY_MULTIPLIERS:
            raise ValidationError(f"Unknown complexity '{complexity}'")
        if ensure_utc(deadline) <= utc_now():
            raise ValidationError("Deadline must be in the future")

        project = await self.project_repo.create(
            project_number=await self.project_repo.next_project_number(),
            title=title_text,
            description=description_text,
            subject=subject.strip() if subject else None,
            service_type=service_type.value,
            word_count=word_count,
            page_count=page_count,
            complexity=complexity,
            deadline=ensure_utc(deadline),
            status=ProjectStatus.DRAFT.value,
            client_id=client_id,
        )
        return project

    @log_operation
    async def submit_project(
        self, project_id: uuid.UUID, client_id: uuid.UUID
    ) -> Project:
        project = await self._lock_as_client(project_id, client_id)
        apply_transition(project, ProjectStatus.SUBMITTED)
        await self.session.flush()
        return project

    @log_operation
    async def accept_quote(
        self, project_id: uuid.UUID, client_id: uuid.UUID
    ) -> Project:
        """
        Accept the open quote; the project then waits for payment.

        Raises:
            ValidationError: No open quote, or it has expired
        """
        project = await self._lock_as_client(project_id, client_id)
        quote = await self.quote_repo.get_latest_for_project(
            project.id, QuoteStatus.SENT.value
        )
        if quote is None:
            raise ValidationError("No open quote for this project")
        if quote.valid_until is not None and ensure_utc(quote.valid_until) <= utc_now():
            raise ValidationError("Quote has expired")

        apply_transition(project, ProjectStatus.PAYMENT_PENDING)
        quote.status = QuoteStatus.ACCEPTED.value
        project.user_amount = quote.user_amount
        project.doer_payout = quote.doer_amount
        project.supervisor_commission = quote.supervisor_amount
        project.platform_fee = quote.platform_amount
        await self.session.flush()
        return project

    @log_operation
    async def reject_quote(
        self, project_id: uuid.UUID, client_id: uuid.UUID
    ) -> Project:
        project = await self._lock_as_client(project_id, client_id)
        quote = await self.quote_repo.get_latest_for_project(
            project.id, QuoteStatus.SENT.value
        )
        if quote is None:
            raise ValidationError("No open quote for this project")
        apply_transition(project, ProjectStatus.ANALYZING)
        quote.status = QuoteStatus.REJECTED.value
        await self.session.flush()
        return project

    @log_operation
    async def request_revision(
        self, project_id: uuid.UUID, client_id: uuid.UUID, feedback: str
    ) -> Project:
        valid, feedback_text, error = validate_text(feedback, 5000, "Feedback")
        if not valid:
            raise ValidationError(error)

        project = await self._lock_as_client(project_id, client_id)
        apply_transition(project, ProjectStatus.REVISION_REQUESTED)
        project.revision_count += 1
        project.qc_feedback = feedback_text
        await self.session.flush()
        await self.notifications.notify_revision_requested(project)
        return project

    @log_operation
    async def complete_project(
        self, project_id: uuid.UUID, client_id: uuid.UUID
    ) -> Project:
        """Approve delivery; credits the doer payout and supervisor commission."""
        project = await self._lock_as_client(project_id, client_id)
        apply_transition(project, ProjectStatus.COMPLETED)
        project.completed_at = utc_now()
        await self._pay_out(project)
        await self.session.flush()
        await self.notifications.notify_project_status(project)
        return project

    async def _pay_out(self, project: Project) -> None:
        earnings = (
            (project.doer_id, project.doer_payout, TransactionType.PROJECT_EARNING),
            (
                project.supervisor_id,
                project.supervisor_commission,
                TransactionType.COMMISSION,
            ),
        )
        for profile_id, amount, transaction_type in earnings:
            if profile_id is None or not amount or amount <= Decimal("0"):
                continue
            await self.wallet_service.credit(
                profile_id,
                amount,
                transaction_type,
                description=f"Earnings for {project.project_number}",
                reference_type="project",
                reference_id=project.id,
            )

    @log_operation
    async def cancel_project(
        self, project_id: uuid.UUID, profile_id: uuid.UUID, reason: str | None = None
    ) -> Project:
        """
        Cancel a project (client owner or its supervisor).

        Paid projects are refunded and end as ``refunded``; a gateway
        refund that fails is retried in the background.
        """
        project = await self._lock_project(project_id)
        if project.client_id != profile_id:
            profile = await self.profile_repo.get_by_id(profile_id)
            allowed = profile is not None and profile.is_supervisor and (
                project.supervisor_id in (None, profile_id)
                or profile.role == ProfileRole.ADMIN.value
            )
            if not allowed:
                raise NotFoundError("Project not found")

        cancel_reason = reason or "Project cancelled"
        if ProjectStatus(project.status) in PAID_STATUSES:
            apply_transition(project, ProjectStatus.REFUNDED)
            await self.payment_service.refund_project_payment(project, cancel_reason)
        else:
            apply_transition(project, ProjectStatus.CANCELLED)

        await self.quote_repo.supersede_open_quotes(project.id)
        await self.session.flush()
        return project

    # Supervisor operations

    @log_operation
    async def start_analysis(
        self, project_id: uuid.UUID, supervisor_id: uuid.UUID
    ) -> Project:
        project = await self._lock_as_supervisor(project_id, supervisor_id)
        apply_transition(project, ProjectStatus.ANALYZING)
        await self.session.flush()
        return project

    @log_operation
    async def create_quote(
        self,
        project_id: uuid.UUID,
        supervisor_id: uuid.UUID,
        complexity: str | None = None,
        discount: Decimal = Decimal("0"),
        notes: str | None = None,
    ) -> ProjectQuote:
        """
        Price the project and send the quote to the client.

        Earlier open quotes are superseded. The quote is valid for 48
        hours.
        """
        project = await self._lock_as_supervisor(project_id, supervisor_id)
        apply_transition(project, ProjectStatus.QUOTED)

        if complexity is not None:
            project.complexity = complexity

        breakdown = calculate_quote(
            project.word_count,
            project.page_count,
            project.complexity,
            project.deadline,
            discount=discount,
        )

        await self.quote_repo.supersede_open_quotes(project.id)
        quote = await self.quote_repo.create(
            project_id=project.id,
            quoted_by=supervisor_id,
            status=QuoteStatus.SENT.value,
            valid_until=utc_now() + timedelta(hours=QUOTE_VALIDITY_HOURS),
            notes=notes,
            **breakdown.as_quote_fields(),
        )

        await self.chat_service.get_or_create_project_room(
            project, ChatRoomType.PROJECT_USER_SUPERVISOR
        )
        await self.notifications.notify_project_status(project)
        return quote

    @log_operation
    async def assign_doer(
        self,
        project_id: uuid.UUID,
        supervisor_id: uuid.UUID,
        doer_id: uuid.UUID,
    ) -> Project:
        """Assign (or reassign) an activated doer to a paid project."""
        doer = await self._get_profile(doer_id)
        if not doer.is_doer or not doer.is_activated:
            raise ValidationError("Profile is not an activated doer")

        project = await self._lock_as_supervisor(project_id, supervisor_id)
        apply_transition(project, ProjectStatus.ASSIGNED)
        project.doer_id = doer_id
        await self.session.flush()

        for room_type in (
            ChatRoomType.PROJECT_SUPERVISOR_DOER, ChatRoomType.PROJECT_ALL
        ):
            await self.chat_service.get_or_create_project_room(project, room_type)

        await self.notifications.notify_task_assigned(project)
        await self.notifications.notify_project_status(project)
        return project

    @log_operation
    async def start_qc(
        self, project_id: uuid.UUID, supervisor_id: uuid.UUID
    ) -> Project:
        project = await self._lock_as_supervisor(project_id, supervisor_id)
        apply_transition(project, ProjectStatus.QC_IN_PROGRESS)
        await self.session.flush()
        return project

    @log_operation
    async def qc_review(
        self,
        project_id: uuid.UUID,
        supervisor_id: uuid.UUID,
        approve: bool,
        feedback: str | None = None,
    ) -> Project:
        """
        Approve (and deliver) or reject submitted work.

        Rejection requires feedback for the doer.
        """
        valid, feedback_text, error = validate_text(
            feedback, 5000, "Feedback", required=not approve
        )
        if not valid:
            raise ValidationError(error)

        project = await self._lock_as_supervisor(project_id, supervisor_id)
        project.qc_feedback = feedback_text

        if approve:
            apply_transition(project, ProjectStatus.QC_APPROVED)
            apply_transition(project, ProjectStatus.DELIVERED)
            project.delivered_at = utc_now()
        else:
            apply_transition(project, ProjectStatus.QC_REJECTED)

        await self.session.flush()
        await self.notifications.notify_qc_result(project, approve)
        if approve:
            await self.notifications.notify_project_status(project)
        return project

    # Doer operations

    @log_operation
    async def start_work(
        self, project_id: uuid.UUID, doer_id: uuid.UUID
    ) -> Project:
        """Begin work, rework after QC rejection, or a requested revision."""
        project = await self._lock_as_doer(project_id, doer_id)
        if project.status == ProjectStatus.REVISION_REQUESTED.value:
            apply_transition(project, ProjectStatus.IN_REVISION)
        else:
            apply_transition(project, ProjectStatus.IN_PROGRESS)
        await self.session.flush()
        return project

    @log_operation
    async def submit_work(
        self, project_id: uuid.UUID, doer_id: uuid.UUID
    ) -> Project:
        project = await self._lock_as_doer(project_id, doer_id)
        apply_transition(project, ProjectStatus.SUBMITTED_FOR_QC)
        await self.session.flush()
        await self.notifications.notify_work_submitted(project)
        return project

    # Background

    async def expire_stale_quotes(
        self, now: datetime | None = None, limit: int = 100
    ) -> int:
        """
        Expire sent quotes past ``valid_until``.

        Projects still waiting on such a quote go back to ``analyzing`` so
        the supervisor can re-quote.

        Returns:
            Number of quotes expired
        """
        current = now or utc_now()
        quotes = await self.quote_repo.find_expired(current, limit)

        for quote in quotes:
            quote.status = QuoteStatus.EXPIRED.value
            project = await self.project_repo.get_for_update(quote.project_id)
            if project is not None and project.status == ProjectStatus.QUOTED.value:
                try:
                    apply_transition(project, ProjectStatus.ANALYZING)
                except InvalidStateTransitionError:
                    self.logger.warning(
                        f"Project {project.id} could not return to analyzing"
                    )

        await self.session.flush()
        if quotes:
            self.logger.info(f"Expired {len(quotes)} quotes")
        return len(quotes)
