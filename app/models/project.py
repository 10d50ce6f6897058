"""
Project and quote models.

A project is a client's work request. Supervisors price it with a quote
(base + urgency + complexity + tax) before the client pays.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import ProjectStatus, QuoteStatus, ServiceType
from app.models.types import MoneyType


if TYPE_CHECKING:
    from app.models.profile import Profile


class Project(Base):
    """Project model - work requests moving through the QC pipeline."""

    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint(
            'word_count IS NULL OR word_count > 0',
            name='check_project_word_count_positive'
        ),
        CheckConstraint(
            'page_count IS NULL OR page_count > 0',
            name='check_project_page_count_positive'
        ),
        Index('idx_project_status_deadline', 'status', 'deadline'),
    )

    project_number: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    service_type: Mapped[str] = mapped_column(
        String(30), default=ServiceType.NEW_PROJECT.value, nullable=False
    )
    word_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    complexity: Mapped[str] = mapped_column(
        String(10), default="easy", nullable=False
    )
    deadline: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(30), default=ProjectStatus.DRAFT.value, nullable=False, index=True
    )
    status_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Parties
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    supervisor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    doer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Money (copied from the accepted quote)
    user_amount: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)
    doer_payout: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)
    supervisor_commission: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )
    platform_fee: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)

    revision_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    qc_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    client: Mapped["Profile"] = relationship(
        "Profile", foreign_keys=[client_id], lazy="selectin"
    )
    quotes: Mapped[list["ProjectQuote"]] = relationship(
        "ProjectQuote",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectQuote.created_at.desc()",
    )

    def is_party(self, profile_id: uuid.UUID) -> bool:
        """Whether the profile is client, supervisor or doer on this project."""
        return profile_id in (self.client_id, self.supervisor_id, self.doer_id)

    def __repr__(self) -> str:
        return (
            f"<Project(id={self.id}, number={self.project_number}, "
            f"status={self.status})>"
        )


class ProjectQuote(Base):
    """Price breakdown proposed to the client before payment."""

    __tablename__ = "project_quotes"
    __table_args__ = (
        CheckConstraint(
            'user_amount > 0', name='check_quote_user_amount_positive'
        ),
        CheckConstraint(
            'doer_amount >= 0', name='check_quote_doer_amount_non_negative'
        ),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quoted_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )

    base_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    urgency_fee: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    complexity_fee: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    tax_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    user_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, comment="Total the client pays (incl. tax)"
    )
    doer_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    supervisor_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    platform_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=QuoteStatus.PENDING.value, nullable=False, index=True
    )
    valid_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    project: Mapped["Project"] = relationship("Project", back_populates="quotes")

    def __repr__(self) -> str:
        return (
            f"<ProjectQuote(id={self.id}, project_id={self.project_id}, "
            f"user_amount={self.user_amount}, status={self.status})>"
        )
