"""
Payment models.

Gateway payments, saved payment methods and persisted payment retries
(with dead letter queue flag).
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.config.constants import DEFAULT_CURRENCY, PERSISTED_RETRY_MAX_ATTEMPTS
from app.models.base import Base
from app.models.enums import PaymentProvider, PaymentStatus
from app.models.types import MoneyType


class Payment(Base):
    """Gateway payment for a project or a wallet top-up."""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_payment_amount_positive'),
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    purpose: Mapped[str] = mapped_column(String(20), nullable=False)
    provider: Mapped[str] = mapped_column(
        String(20), default=PaymentProvider.RAZORPAY.value, nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), default=DEFAULT_CURRENCY, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(30), default=PaymentStatus.INITIATED.value, nullable=False, index=True
    )

    gateway_order_id: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    gateway_payment_id: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    idempotency_key: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, purpose={self.purpose}, "
            f"amount={self.amount}, status={self.status})>"
        )


class PaymentMethod(Base):
    """Saved card or UPI id."""

    __tablename__ = "payment_methods"
    __table_args__ = (
        Index('idx_payment_method_profile_default', 'profile_id', 'is_default'),
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    method_type: Mapped[str] = mapped_column(String(10), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_default: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Card fields
    card_last_four: Mapped[str | None] = mapped_column(String(4), nullable=True)
    card_network: Mapped[str | None] = mapped_column(String(30), nullable=True)
    card_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    card_expiry: Mapped[str | None] = mapped_column(String(7), nullable=True)
    card_token_encrypted: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Fernet-encrypted gateway card token"
    )
    bank_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # UPI fields
    upi_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<PaymentMethod(id={self.id}, type={self.method_type}, "
            f"default={self.is_default})>"
        )


class PaymentRetry(Base):
    """
    Gateway operation that failed after in-request retries.

    Picked up by the background job with exponential backoff; moved to the
    dead letter queue (in_dlq) once attempts are exhausted.
    """

    __tablename__ = "payment_retries"
    __table_args__ = (
        Index('idx_payment_retry_pending', 'resolved', 'in_dlq', 'next_retry_at'),
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payment_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("payments.id", ondelete="SET NULL"),
        nullable=True,
    )
    operation: Mapped[str] = mapped_column(String(30), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False)
    idempotency_key: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_retries: Mapped[int] = mapped_column(
        Integer, default=PERSISTED_RETRY_MAX_ATTEMPTS, nullable=False
    )
    next_retry_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_stack: Mapped[str | None] = mapped_column(Text, nullable=True)
    gateway_reference: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )

    in_dlq: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentRetry(id={self.id}, operation={self.operation}, "
            f"attempts={self.attempt_count}/{self.max_retries}, "
            f"in_dlq={self.in_dlq})>"
        )
