"""
Wallet service.

Balance changes always lock the wallet row and append a ledger entry with
the balance before and after.
"""

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import MINIMUM_PAYOUT_AMOUNT
from app.models.enums import PayoutStatus, ProfileRole, TransactionType
from app.models.wallet import PayoutRequest, Wallet, WalletTransaction
from app.repositories.profile_repository import ProfileRepository
from app.repositories.wallet_repository import (
    PayoutRequestRepository,
    WalletRepository,
    WalletTransactionRepository,
)
from app.services.base_service import BaseService, log_operation
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    InsufficientFundsError,
    InvalidStateTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.utils.formatters import quantize_money


# Ledger types that move money into the wallet
CREDIT_TYPES = frozenset({
    TransactionType.CREDIT,
    TransactionType.REFUND,
    TransactionType.TOP_UP,
    TransactionType.PROJECT_EARNING,
    TransactionType.COMMISSION,
    TransactionType.BONUS,
    TransactionType.REVERSAL,
})

PAYOUT_ROLES = frozenset({ProfileRole.DOER.value, ProfileRole.SUPERVISOR.value})


class WalletService(BaseService):
    """Wallet balances, ledger and payouts."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.wallet_repo = WalletRepository(session)
        self.transaction_repo = WalletTransactionRepository(session)
        self.payout_repo = PayoutRequestRepository(session)
        self.profile_repo = ProfileRepository(session)

    async def get_or_create_wallet(
        self, profile_id: uuid.UUID, for_update: bool = False
    ) -> Wallet:
        """Profiles get a wallet lazily on first use."""
        wallet = await self.wallet_repo.get_by_profile(profile_id, for_update)
        if wallet is not None:
            return wallet

        self.logger.info(f"Creating wallet for profile {profile_id}")
        wallet = await self.wallet_repo.create(profile_id=profile_id)
        if for_update:
            wallet = await self.wallet_repo.get_by_profile(profile_id, True)
        return wallet

    @staticmethod
    def _positive(amount: Decimal) -> Decimal:
        value = quantize_money(amount)
        if value <= 0:
            raise ValidationError("Amount must be positive", amount=str(amount))
        return value

    async def credit(
        self,
        profile_id: uuid.UUID,
        amount: Decimal,
        transaction_type: TransactionType = TransactionType.CREDIT,
        description: str | None = None,
        reference_type: str | None = None,
        reference_id: uuid.UUID | None = None,
        extra_data: dict[str, Any] | None = None,
    ) -> WalletTransaction:
        """
        Add money to a wallet.

        Args:
            profile_id: Wallet owner
            amount: Positive rupee amount
            transaction_type: Ledger type (must be a credit type)
            description: Shown in the transaction history
            reference_type: Entity kind (project, payment, payout)
            reference_id: Entity id

        Returns:
            Ledger entry
        """
        if transaction_type not in CREDIT_TYPES:
            raise ValidationError(
                f"{transaction_type.value} is not a credit transaction"
            )
        value = self._positive(amount)
        wallet = await self.get_or_create_wallet(profile_id, for_update=True)

        balance_before = wallet.balance
        wallet.balance = balance_before + value
        wallet.total_credited = wallet.total_credited + value

        entry = await self.transaction_repo.create(
            wallet_id=wallet.id,
            transaction_type=transaction_type.value,
            amount=value,
            balance_before=balance_before,
            balance_after=wallet.balance,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            extra_data=extra_data,
        )

        self.logger.info(
            "Wallet credited",
            extra={
                "profile_id": str(profile_id),
                "type": transaction_type.value,
                "amount": str(value),
                "balance_before": str(balance_before),
                "balance_after": str(wallet.balance),
            },
        )
        return entry

    async def debit(
        self,
        profile_id: uuid.UUID,
        amount: Decimal,
        transaction_type: TransactionType = TransactionType.DEBIT,
        description: str | None = None,
        reference_type: str | None = None,
        reference_id: uuid.UUID | None = None,
        extra_data: dict[str, Any] | None = None,
    ) -> WalletTransaction:
        """
        Take money out of a wallet.

        Only the available balance (balance minus amounts locked by pending
        payouts) can be spent.

        Raises:
            InsufficientFundsError: Available balance is too low
        """
        if transaction_type in CREDIT_TYPES:
            raise ValidationError(
                f"{transaction_type.value} is not a debit transaction"
            )
        value = self._positive(amount)
        wallet = await self.get_or_create_wallet(profile_id, for_update=True)

        if wallet.available_balance < value:
            raise InsufficientFundsError(
                "Insufficient wallet balance",
                available=str(wallet.available_balance),
                requested=str(value),
            )

        balance_before = wallet.balance
        wallet.balance = balance_before - value
        wallet.total_debited = wallet.total_debited + value

        entry = await self.transaction_repo.create(
            wallet_id=wallet.id,
            transaction_type=transaction_type.value,
            amount=value,
            balance_before=balance_before,
            balance_after=wallet.balance,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            extra_data=extra_data,
        )

        self.logger.info(
            "Wallet debited",
            extra={
                "profile_id": str(profile_id),
                "type": transaction_type.value,
                "amount": str(value),
                "balance_before": str(balance_before),
                "balance_after": str(wallet.balance),
            },
        )
        return entry

    async def get_transactions(
        self,
        profile_id: uuid.UUID,
        transaction_type: TransactionType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WalletTransaction]:
        wallet = await self.get_or_create_wallet(profile_id)
        return await self.transaction_repo.find_for_wallet(
            wallet.id,
            transaction_type=transaction_type.value if transaction_type else None,
            limit=limit,
            offset=offset,
        )

    @log_operation
    async def request_payout(
        self, profile_id: uuid.UUID, amount: Decimal
    ) -> PayoutRequest:
        """
        Request a withdrawal of earnings.

        The amount is locked in the wallet until the payout completes or
        fails.

        Raises:
            PermissionDeniedError: Clients cannot withdraw
            ValidationError: Below the minimum payout
            InsufficientFundsError: Not enough available balance
        """
        profile = self._require(
            await self.profile_repo.get_by_id(profile_id), "Profile not found"
        )
        if profile.role not in PAYOUT_ROLES:
            raise PermissionDeniedError("Only doers and supervisors can withdraw")

        value = self._positive(amount)
        if value < MINIMUM_PAYOUT_AMOUNT:
            raise ValidationError(
                f"Minimum payout is {MINIMUM_PAYOUT_AMOUNT}",
                minimum=str(MINIMUM_PAYOUT_AMOUNT),
            )

        wallet = await self.get_or_create_wallet(profile_id, for_update=True)
        if wallet.available_balance < value:
            raise InsufficientFundsError(
                "Insufficient wallet balance",
                available=str(wallet.available_balance),
                requested=str(value),
            )

        wallet.locked_amount = wallet.locked_amount + value
        payout = await self.payout_repo.create(
            profile_id=profile_id,
            wallet_id=wallet.id,
            amount=value,
            status=PayoutStatus.PENDING.value,
        )
        return payout

    async def _get_pending_payout(self, payout_id: uuid.UUID) -> PayoutRequest:
        payout = await self.payout_repo.get_for_update(payout_id)
        if payout is None:
            raise NotFoundError("Payout request not found")
        if payout.status != PayoutStatus.PENDING.value:
            raise InvalidStateTransitionError(
                payout.status, PayoutStatus.COMPLETED.value
            )
        return payout

    @log_operation
    async def complete_payout(self, payout_id: uuid.UUID) -> PayoutRequest:
        """Release the lock and record the withdrawal in the ledger."""
        payout = await self._get_pending_payout(payout_id)
        wallet = await self.get_or_create_wallet(payout.profile_id, for_update=True)

        balance_before = wallet.balance
        wallet.locked_amount = wallet.locked_amount - payout.amount
        wallet.balance = balance_before - payout.amount
        wallet.total_withdrawn = wallet.total_withdrawn + payout.amount

        await self.transaction_repo.create(
            wallet_id=wallet.id,
            transaction_type=TransactionType.WITHDRAWAL.value,
            amount=payout.amount,
            balance_before=balance_before,
            balance_after=wallet.balance,
            description="Payout to bank account",
            reference_type="payout",
            reference_id=payout.id,
        )

        payout.status = PayoutStatus.COMPLETED.value
        payout.processed_at = utc_now()
        await self.session.flush()
        return payout

    @log_operation
    async def fail_payout(
        self, payout_id: uuid.UUID, reason: str
    ) -> PayoutRequest:
        """Release the locked amount back to the available balance."""
        payout = await self._get_pending_payout(payout_id)
        wallet = await self.get_or_create_wallet(payout.profile_id, for_update=True)

        wallet.locked_amount = wallet.locked_amount - payout.amount
        payout.status = PayoutStatus.FAILED.value
        payout.failure_reason = reason
        payout.processed_at = utc_now()
        await self.session.flush()
        return payout

    async def list_payouts(self, profile_id: uuid.UUID) -> list[PayoutRequest]:
        return await self.payout_repo.find_all(profile_id=profile_id)
