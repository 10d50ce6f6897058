"""
Payment repository.

Data access layer for Payment, PaymentMethod and PaymentRetry models.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PaymentStatus
from app.models.payment import Payment, PaymentMethod, PaymentRetry
from app.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """Gateway payment repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Payment, session)

    async def get_by_order_id(
        self, gateway_order_id: str, for_update: bool = False
    ) -> Payment | None:
        stmt = select(Payment).where(Payment.gateway_order_id == gateway_order_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_for_order(self, **data: Any) -> tuple[Payment, bool]:
        """
        Insert a payment unless its gateway order is already stored.

        Requests joined on one in-flight order all reach this point; the
        first insert wins and the rest get the stored row back. Waits on
        an uncommitted insert of the same order instead of failing.

        Returns:
            (payment, inserted)
        """
        stmt = (
            pg_insert(Payment)
            .values(**data)
            .on_conflict_do_nothing(index_elements=["gateway_order_id"])
            .returning(Payment.id)
        )
        result = await self.session.execute(stmt)
        inserted = result.scalar_one_or_none() is not None
        payment = await self.get_by_order_id(data["gateway_order_id"])
        return payment, inserted

    async def get_by_idempotency_key(self, key: str) -> Payment | None:
        return await self.get_by(idempotency_key=key)

    async def get_completed_for_project(
        self, project_id: uuid.UUID
    ) -> Payment | None:
        """Latest completed payment of a project (locked for refunding)."""
        stmt = (
            select(Payment)
            .where(
                Payment.project_id == project_id,
                Payment.status == PaymentStatus.COMPLETED.value,
            )
            .order_by(Payment.completed_at.desc())
            .limit(1)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_for_profile(
        self, profile_id: uuid.UUID, limit: int = 50, offset: int = 0
    ) -> list[Payment]:
        return await self.find_all(limit=limit, offset=offset, profile_id=profile_id)


class PaymentMethodRepository(BaseRepository[PaymentMethod]):
    """Saved payment method repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(PaymentMethod, session)

    async def find_for_profile(self, profile_id: uuid.UUID) -> list[PaymentMethod]:
        """Default method first, then newest."""
        stmt = (
            select(PaymentMethod)
            .where(PaymentMethod.profile_id == profile_id)
            .order_by(
                PaymentMethod.is_default.desc(),
                PaymentMethod.created_at.desc(),
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_owned(
        self, method_id: uuid.UUID, profile_id: uuid.UUID
    ) -> PaymentMethod | None:
        return await self.get_by(id=method_id, profile_id=profile_id)

    async def get_by_upi(
        self, profile_id: uuid.UUID, upi_id: str
    ) -> PaymentMethod | None:
        return await self.get_by(profile_id=profile_id, upi_id=upi_id)

    async def clear_default(
        self, profile_id: uuid.UUID, except_id: uuid.UUID | None = None
    ) -> None:
        """Unset is_default on every method of a profile (optionally but one)."""
        stmt = (
            update(PaymentMethod)
            .where(
                PaymentMethod.profile_id == profile_id,
                PaymentMethod.is_default.is_(True),
            )
            .values(is_default=False)
        )
        if except_id is not None:
            stmt = stmt.where(PaymentMethod.id != except_id)
        await self.session.execute(stmt)


class PaymentRetryRepository(BaseRepository[PaymentRetry]):
    """Persisted payment retry repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(PaymentRetry, session)

    async def get_by_idempotency_key(self, key: str) -> PaymentRetry | None:
        stmt = (
            select(PaymentRetry)
            .where(
                PaymentRetry.idempotency_key == key,
                PaymentRetry.resolved.is_(False),
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_pending_retries(
        self, now: datetime, limit: int
    ) -> list[PaymentRetry]:
        """
        Retries that are due, locked with SKIP LOCKED.

        Concurrent workers each get a disjoint batch.
        """
        stmt = (
            select(PaymentRetry)
            .where(
                PaymentRetry.resolved.is_(False),
                PaymentRetry.in_dlq.is_(False),
                PaymentRetry.next_retry_at <= now,
            )
            .order_by(PaymentRetry.next_retry_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_dlq(self, limit: int = 100) -> list[PaymentRetry]:
        stmt = (
            select(PaymentRetry)
            .where(
                PaymentRetry.in_dlq.is_(True),
                PaymentRetry.resolved.is_(False),
            )
            .order_by(PaymentRetry.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_stats(self) -> dict[str, Any]:
        """Counts of pending, DLQ and resolved retries plus open amounts."""
        unresolved = PaymentRetry.resolved.is_(False)
        stmt = select(
            func.count().filter(
                PaymentRetry.resolved.is_(False),
                PaymentRetry.in_dlq.is_(False),
            ),
            func.count().filter(
                PaymentRetry.resolved.is_(False),
                PaymentRetry.in_dlq.is_(True),
            ),
            func.count().filter(PaymentRetry.resolved.is_(True)),
            func.coalesce(func.sum(PaymentRetry.amount).filter(unresolved), 0),
            func.coalesce(
                func.sum(PaymentRetry.amount).filter(
                    unresolved, PaymentRetry.in_dlq.is_(True)
                ),
                0,
            ),
        ).select_from(PaymentRetry)
        result = await self.session.execute(stmt)
        pending, dlq, resolved, total_amount, dlq_amount = result.one()
        return {
            "pending": pending or 0,
            "dlq": dlq or 0,
            "resolved": resolved or 0,
            "total_amount": Decimal(total_amount or 0),
            "dlq_amount": Decimal(dlq_amount or 0),
        }
