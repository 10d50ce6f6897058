"""
Wallet repository.

Data access layer for Wallet, WalletTransaction and PayoutRequest models.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.wallet import PayoutRequest, Wallet, WalletTransaction
from app.repositories.base import BaseRepository


class WalletRepository(BaseRepository[Wallet]):
    """Wallet repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Wallet, session)

    async def get_by_profile(
        self, profile_id: uuid.UUID, for_update: bool = False
    ) -> Wallet | None:
        """
        Get a profile's wallet.

        Args:
            profile_id: Owner profile ID
            for_update: Lock the row (SELECT FOR UPDATE) for balance changes

        Returns:
            Wallet or None
        """
        stmt = select(Wallet).where(Wallet.profile_id == profile_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class WalletTransactionRepository(BaseRepository[WalletTransaction]):
    """Wallet ledger repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(WalletTransaction, session)

    async def find_for_wallet(
        self,
        wallet_id: uuid.UUID,
        transaction_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WalletTransaction]:
        filters = {"wallet_id": wallet_id}
        if transaction_type:
            filters["transaction_type"] = transaction_type
        return await self.find_all(limit=limit, offset=offset, **filters)


class PayoutRequestRepository(BaseRepository[PayoutRequest]):
    """Payout request repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(PayoutRequest, session)
