"""
User-specific notification functionality.

Notifications for project, payment and payout events.
"""

import uuid
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import NotificationType, ProjectStatus
from app.models.project import Project
from app.utils.formatters import format_inr


# Status changes the client is told about
PROJECT_STATUS_NOTIFICATIONS = {
    ProjectStatus.QUOTED: (
        NotificationType.QUOTE_READY, "Your quote is ready",
    ),
    ProjectStatus.ASSIGNED: (
        NotificationType.PROJECT_ASSIGNED, "An expert has been assigned",
    ),
    ProjectStatus.DELIVERED: (
        NotificationType.PROJECT_DELIVERED, "Your project has been delivered",
    ),
    ProjectStatus.COMPLETED: (
        NotificationType.PROJECT_COMPLETED, "Project completed",
    ),
}


class UserNotificationMixin:
    """
    Mixin for user-specific notification methods.

    Relies on ``notify`` from the core service.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user notification mixin."""
        self.session = session

    async def notify_project_status(self, project: Project) -> None:
        """Tell the client about a status change they care about."""
        entry = PROJECT_STATUS_NOTIFICATIONS.get(ProjectStatus(project.status))
        if entry is None:
            return
        notification_type, title = entry
        await self.notify(
            project.client_id,
            notification_type,
            title,
            body=f"{project.project_number}: {project.title}",
            reference_type="project",
            reference_id=project.id,
            action_url=f"/projects/{project.id}",
        )

    async def notify_payment_received(
        self,
        profile_id: uuid.UUID,
        amount: Decimal,
        project: Project | None = None,
    ) -> None:
        if project is not None:
            body = f"{format_inr(amount)} received for {project.project_number}"
        else:
            body = f"{format_inr(amount)} added to your wallet"
        await self.notify(
            profile_id,
            NotificationType.PAYMENT_RECEIVED,
            "Payment received",
            body=body,
            reference_type="project" if project is not None else "wallet",
            reference_id=project.id if project is not None else None,
        )

    async def notify_task_assigned(self, project: Project) -> None:
        if project.doer_id is None:
            return
        await self.notify(
            project.doer_id,
            NotificationType.TASK_ASSIGNED,
            "New task assigned",
            body=f"{project.project_number}: {project.title}",
            reference_type="project",
            reference_id=project.id,
        )

    async def notify_work_submitted(self, project: Project) -> None:
        if project.supervisor_id is None:
            return
        await self.notify(
            project.supervisor_id,
            NotificationType.WORK_SUBMITTED,
            "Work submitted for QC",
            body=project.project_number,
            reference_type="project",
            reference_id=project.id,
        )

    async def notify_qc_result(self, project: Project, approved: bool) -> None:
        if project.doer_id is None:
            return
        await self.notify(
            project.doer_id,
            NotificationType.QC_APPROVED if approved else NotificationType.QC_REJECTED,
            "Work approved" if approved else "Work needs changes",
            body=project.qc_feedback,
            reference_type="project",
            reference_id=project.id,
        )

    async def notify_revision_requested(self, project: Project) -> None:
        for recipient in (project.supervisor_id, project.doer_id):
            if recipient is None:
                continue
            await self.notify(
                recipient,
                NotificationType.REVISION_REQUESTED,
                "Revision requested",
                body=project.project_number,
                reference_type="project",
                reference_id=project.id,
            )

    async def notify_payout_processed(
        self, profile_id: uuid.UUID, amount: Decimal, payout_id: uuid.UUID
    ) -> None:
        await self.notify(
            profile_id,
            NotificationType.PAYOUT_PROCESSED,
            "Payout processed",
            body=f"{format_inr(amount)} sent to your account",
            reference_type="payout",
            reference_id=payout_id,
        )
