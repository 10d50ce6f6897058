"""
Profile model.

One row per authenticated identity of the hosted auth service. The id is
the auth user id (the JWT ``sub`` claim).
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import ProfileRole


if TYPE_CHECKING:
    from app.models.wallet import Wallet


class Profile(Base):
    """Profile model - clients, supervisors and doers."""

    __tablename__ = "profiles"
    __table_args__ = (
        Index('idx_profile_role_active', 'role', 'is_active'),
    )

    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    role: Mapped[str] = mapped_column(
        String(20), default=ProfileRole.CLIENT.value, nullable=False
    )

    # Status flags
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    is_blocked: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    is_activated: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Doers and supervisors pass training before taking work",
    )

    wallet: Mapped["Wallet | None"] = relationship(
        "Wallet", back_populates="profile", uselist=False, lazy="selectin"
    )

    @property
    def is_supervisor(self) -> bool:
        return self.role in (ProfileRole.SUPERVISOR.value, ProfileRole.ADMIN.value)

    @property
    def is_doer(self) -> bool:
        return self.role == ProfileRole.DOER.value

    @property
    def is_client(self) -> bool:
        return self.role == ProfileRole.CLIENT.value

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, role={self.role})>"
