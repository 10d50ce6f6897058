"""
Chat models.

Rooms are scoped to a project (or support/direct), participants are
tracked per room, messages carry a manual flag for supervisor review.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import MessageType


class ChatRoom(Base):
    """Chat room model."""

    __tablename__ = "chat_rooms"
    __table_args__ = (
        Index('idx_chat_room_project_type', 'project_id', 'room_type'),
    )

    room_type: Mapped[str] = mapped_column(String(30), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    participants: Mapped[list["ChatParticipant"]] = relationship(
        "ChatParticipant",
        back_populates="room",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def participant_ids(self) -> set[uuid.UUID]:
        return {p.profile_id for p in self.participants if p.is_active}

    def __repr__(self) -> str:
        return f"<ChatRoom(id={self.id}, type={self.room_type})>"


class ChatParticipant(Base):
    """Membership of a profile in a room."""

    __tablename__ = "chat_participants"
    __table_args__ = (
        UniqueConstraint('room_id', 'profile_id', name='uq_chat_participant'),
    )

    room_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    participant_role: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_read_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    room: Mapped["ChatRoom"] = relationship("ChatRoom", back_populates="participants")


class ChatMessage(Base):
    """Stored chat message."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index('idx_chat_message_room_created', 'room_id', 'created_at'),
    )

    room_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_rooms.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    message_type: Mapped[str] = mapped_column(
        String(20), default=MessageType.TEXT.value, nullable=False
    )
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    is_flagged: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    flagged_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    flagged_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ChatMessage(id={self.id}, room_id={self.room_id}, "
            f"flagged={self.is_flagged})>"
        )
