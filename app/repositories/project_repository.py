"""
Project repository.

Data access layer for Project and ProjectQuote models.
"""

import uuid
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ProfileRole, QuoteStatus
from app.models.project import Project, ProjectQuote
from app.repositories.base import BaseRepository


PROJECT_NUMBER_PREFIX = "AX-"


class ProjectRepository(BaseRepository[Project]):
    """Project repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Project, session)

    async def next_project_number(self) -> str:
        """
        Build the next human-readable project number (AX-00001).

        The unique constraint on project_number rejects a concurrent
        duplicate; the request then fails and can be retried.
        """
        stmt = select(func.count(Project.id))
        result = await self.session.execute(stmt)
        total = result.scalar() or 0
        return f"{PROJECT_NUMBER_PREFIX}{total + 1:05d}"

    async def find_for_profile(
        self,
        profile_id: uuid.UUID,
        role: str,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Project]:
        """
        Find projects visible to a profile.

        Clients see their own projects, doers the ones assigned to them.
        Supervisors see projects they supervise plus the unclaimed
        submitted queue.

        Args:
            profile_id: Viewer profile ID
            role: Viewer role
            status: Optional status filter
            limit: Page size
            offset: Rows to skip

        Returns:
            Projects, most recently created first
        """
        stmt = select(Project)

        if role == ProfileRole.CLIENT.value:
            stmt = stmt.where(Project.client_id == profile_id)
        elif role == ProfileRole.DOER.value:
            stmt = stmt.where(Project.doer_id == profile_id)
        elif role == ProfileRole.SUPERVISOR.value:
            stmt = stmt.where(
                or_(
                    Project.supervisor_id == profile_id,
                    Project.supervisor_id.is_(None),
                )
            )
        # Admins see everything

        if status:
            stmt = stmt.where(Project.status == status)

        stmt = (
            stmt.order_by(Project.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class ProjectQuoteRepository(BaseRepository[ProjectQuote]):
    """Quote repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ProjectQuote, session)

    async def get_latest_for_project(
        self, project_id: uuid.UUID, status: str | None = None
    ) -> ProjectQuote | None:
        stmt = select(ProjectQuote).where(ProjectQuote.project_id == project_id)
        if status:
            stmt = stmt.where(ProjectQuote.status == status)
        stmt = stmt.order_by(ProjectQuote.created_at.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def supersede_open_quotes(self, project_id: uuid.UUID) -> int:
        """Reject quotes still open for a project before a new one is sent."""
        stmt = (
            update(ProjectQuote)
            .where(
                ProjectQuote.project_id == project_id,
                ProjectQuote.status.in_(
                    [QuoteStatus.PENDING.value, QuoteStatus.SENT.value]
                ),
            )
            .values(status=QuoteStatus.REJECTED.value)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def find_expired(self, now: datetime, limit: int = 100) -> list[ProjectQuote]:
        """Sent quotes whose validity window has passed."""
        stmt = (
            select(ProjectQuote)
            .where(
                ProjectQuote.status == QuoteStatus.SENT.value,
                ProjectQuote.valid_until.is_not(None),
                ProjectQuote.valid_until < now,
            )
            .order_by(ProjectQuote.valid_until.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
