"""
Wallet models.

Wallet balances per profile, an append-only transaction ledger and doer
payout requests.
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
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.config.constants import DEFAULT_CURRENCY
from app.models.base import Base
from app.models.enums import PayoutStatus
from app.models.types import MoneyType


if TYPE_CHECKING:
    from app.models.profile import Profile


class Wallet(Base):
    """Wallet model - one per profile."""

    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint(
            'balance >= 0', name='check_wallet_balance_non_negative'
        ),
        CheckConstraint(
            'locked_amount >= 0', name='check_wallet_locked_non_negative'
        ),
        CheckConstraint(
            'locked_amount <= balance', name='check_wallet_locked_within_balance'
        ),
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    currency: Mapped[str] = mapped_column(
        String(3), default=DEFAULT_CURRENCY, nullable=False
    )
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    locked_amount: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Reserved by pending payout requests",
    )
    total_credited: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_debited: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_withdrawn: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    profile: Mapped["Profile"] = relationship("Profile", back_populates="wallet")

    @property
    def available_balance(self) -> Decimal:
        """Balance that is not reserved by pending payouts."""
        return self.balance - self.locked_amount

    def __repr__(self) -> str:
        return (
            f"<Wallet(id={self.id}, profile_id={self.profile_id}, "
            f"balance={self.balance})>"
        )


class WalletTransaction(Base):
    """Ledger row for every wallet balance change."""

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_wallet_tx_amount_positive'),
        Index('idx_wallet_tx_wallet_created', 'wallet_id', 'created_at'),
    )

    wallet_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("wallets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True
    )
    extra_data: Mapped[dict | None] = mapped_column(
        "metadata", JSONB, nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<WalletTransaction(id={self.id}, type={self.transaction_type}, "
            f"amount={self.amount})>"
        )


class PayoutRequest(Base):
    """Doer/supervisor withdrawal request."""

    __tablename__ = "payout_requests"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_payout_amount_positive'),
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("wallets.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PayoutStatus.PENDING.value, nullable=False, index=True
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<PayoutRequest(id={self.id}, amount={self.amount}, "
            f"status={self.status})>"
        )
