"""
Moderation log model.

One row per blocked chat message, used for rate limiting offenders and
for violation summaries shown to supervisors.
"""

import uuid

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import ModerationAction


class ModerationLog(Base):
    """Blocked content record."""

    __tablename__ = "moderation_logs"
    __table_args__ = (
        Index('idx_moderation_log_profile_created', 'profile_id', 'created_at'),
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    room_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_rooms.id", ondelete="SET NULL"),
        nullable=True,
    )
    original_content: Mapped[str] = mapped_column(Text, nullable=False)
    sanitized_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    violation_types: Mapped[list] = mapped_column(JSONB, nullable=False)
    violations: Mapped[dict] = mapped_column(JSONB, nullable=False)
    severity: Mapped[str] = mapped_column(String(10), nullable=False)
    action: Mapped[str] = mapped_column(
        String(20), default=ModerationAction.BLOCKED.value, nullable=False
    )
    # Cleared by a supervisor: kept for history, ignored by rate limits
    counts_toward_limit: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ModerationLog(id={self.id}, profile_id={self.profile_id}, "
            f"severity={self.severity})>"
        )
