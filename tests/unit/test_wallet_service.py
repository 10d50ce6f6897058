"""Unit tests for WalletService."""

import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.models.enums import PayoutStatus, ProfileRole, TransactionType
from app.services.wallet_service import WalletService
from app.utils.exceptions import (
    InsufficientFundsError,
    InvalidStateTransitionError,
    PermissionDeniedError,
    ValidationError,
)


def _echo(**kwargs):
    return SimpleNamespace(id=uuid.uuid4(), **kwargs)


@pytest.fixture
def service(mock_session):
    svc = WalletService(mock_session)
    svc.wallet_repo = AsyncMock()
    svc.transaction_repo = AsyncMock()
    svc.transaction_repo.create.side_effect = _echo
    svc.payout_repo = AsyncMock()
    svc.payout_repo.create.side_effect = _echo
    svc.profile_repo = AsyncMock()
    return svc


class TestCredit:
    """Tests for crediting a wallet."""

    @pytest.mark.asyncio
    async def test_credit_updates_balance_and_ledger(self, service, make_wallet):
        wallet = make_wallet(balance="100.00")
        service.wallet_repo.get_by_profile.return_value = wallet

        entry = await service.credit(
            wallet.profile_id, Decimal("50.505"), TransactionType.TOP_UP
        )

        service.wallet_repo.get_by_profile.assert_awaited_once_with(
            wallet.profile_id, True
        )
        assert wallet.balance == Decimal("150.51")
        assert wallet.total_credited == Decimal("50.51")
        assert entry.transaction_type == "top_up"
        assert entry.balance_before == Decimal("100.00")
        assert entry.balance_after == Decimal("150.51")

    @pytest.mark.asyncio
    async def test_creates_missing_wallet(self, service, make_wallet):
        wallet = make_wallet()
        service.wallet_repo.get_by_profile.side_effect = [None, wallet]
        service.wallet_repo.create.return_value = wallet

        await service.credit(wallet.profile_id, Decimal("10"))

        service.wallet_repo.create.assert_awaited_once_with(
            profile_id=wallet.profile_id
        )
        assert wallet.balance == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_debit_type_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.credit(uuid.uuid4(), Decimal("10"), TransactionType.DEBIT)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5", "0.001"])
    async def test_non_positive_amount(self, service, amount):
        with pytest.raises(ValidationError):
            await service.credit(uuid.uuid4(), Decimal(amount))


class TestDebit:
    """Tests for debiting a wallet."""

    @pytest.mark.asyncio
    async def test_debit_within_available_balance(self, service, make_wallet):
        wallet = make_wallet(balance="1000", locked="200")
        service.wallet_repo.get_by_profile.return_value = wallet

        entry = await service.debit(
            wallet.profile_id, Decimal("800"), TransactionType.PROJECT_PAYMENT
        )

        assert wallet.balance == Decimal("200.00")
        assert wallet.total_debited == Decimal("800.00")
        assert entry.transaction_type == "project_payment"

    @pytest.mark.asyncio
    async def test_locked_amount_cannot_be_spent(self, service, make_wallet):
        wallet = make_wallet(balance="1000", locked="200")
        service.wallet_repo.get_by_profile.return_value = wallet

        with pytest.raises(InsufficientFundsError):
            await service.debit(wallet.profile_id, Decimal("800.01"))

        assert wallet.balance == Decimal("1000")
        service.transaction_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_credit_type_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.debit(uuid.uuid4(), Decimal("10"), TransactionType.REFUND)


class TestPayouts:
    """Tests for payout requests."""

    @pytest.mark.asyncio
    async def test_client_cannot_withdraw(self, service, make_profile):
        service.profile_repo.get_by_id.return_value = make_profile(ProfileRole.CLIENT)

        with pytest.raises(PermissionDeniedError):
            await service.request_payout(uuid.uuid4(), Decimal("600"))

    @pytest.mark.asyncio
    async def test_below_minimum(self, service, make_profile):
        service.profile_repo.get_by_id.return_value = make_profile(ProfileRole.DOER)

        with pytest.raises(ValidationError):
            await service.request_payout(uuid.uuid4(), Decimal("499.99"))

    @pytest.mark.asyncio
    async def test_request_locks_amount(self, service, make_profile, make_wallet):
        doer = make_profile(ProfileRole.DOER)
        wallet = make_wallet(balance="900", locked="100", profile_id=doer.id)
        service.profile_repo.get_by_id.return_value = doer
        service.wallet_repo.get_by_profile.return_value = wallet

        payout = await service.request_payout(doer.id, Decimal("500"))

        assert wallet.locked_amount == Decimal("600.00")
        assert wallet.balance == Decimal("900")
        assert payout.status == PayoutStatus.PENDING.value
        assert payout.amount == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_request_beyond_available(self, service, make_profile, make_wallet):
        supervisor = make_profile(ProfileRole.SUPERVISOR)
        service.profile_repo.get_by_id.return_value = supervisor
        service.wallet_repo.get_by_profile.return_value = make_wallet(
            balance="900", locked="500"
        )

        with pytest.raises(InsufficientFundsError):
            await service.request_payout(supervisor.id, Decimal("500"))

    @pytest.mark.asyncio
    async def test_complete_payout(self, service, make_wallet):
        wallet = make_wallet(balance="900", locked="500")
        payout = SimpleNamespace(
            id=uuid.uuid4(),
            profile_id=wallet.profile_id,
            amount=Decimal("500.00"),
            status=PayoutStatus.PENDING.value,
            processed_at=None,
        )
        service.payout_repo.get_for_update.return_value = payout
        service.wallet_repo.get_by_profile.return_value = wallet

        await service.complete_payout(payout.id)

        assert payout.status == "completed"
        assert payout.processed_at is not None
        assert wallet.balance == Decimal("400.00")
        assert wallet.locked_amount == Decimal("0.00")
        assert wallet.total_withdrawn == Decimal("500.00")
        kwargs = service.transaction_repo.create.await_args.kwargs
        assert kwargs["transaction_type"] == "withdrawal"
        assert kwargs["reference_id"] == payout.id

    @pytest.mark.asyncio
    async def test_fail_payout_releases_lock(self, service, make_wallet):
        wallet = make_wallet(balance="900", locked="500")
        payout = SimpleNamespace(
            id=uuid.uuid4(),
            profile_id=wallet.profile_id,
            amount=Decimal("500.00"),
            status=PayoutStatus.PENDING.value,
        )
        service.payout_repo.get_for_update.return_value = payout
        service.wallet_repo.get_by_profile.return_value = wallet

        await service.fail_payout(payout.id, "Bank rejected")

        assert payout.status == "failed"
        assert payout.failure_reason == "Bank rejected"
        assert wallet.locked_amount == Decimal("0.00")
        assert wallet.balance == Decimal("900")

    @pytest.mark.asyncio
    async def test_settled_payout_cannot_change(self, service):
        service.payout_repo.get_for_update.return_value = SimpleNamespace(
            status=PayoutStatus.COMPLETED.value
        )

        with pytest.raises(InvalidStateTransitionError):
            await service.fail_payout(uuid.uuid4(), "late")
