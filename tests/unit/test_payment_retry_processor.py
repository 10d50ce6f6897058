"""Unit tests for persisted payment retries and the DLQ."""

import uuid
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.enums import RetryOperation
from app.services.payment_retry import PaymentRetryService
from app.services.payment_retry.constants import (
    BASE_RETRY_DELAY_SECONDS,
    DEFAULT_MAX_RETRIES,
)
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import PaymentGatewayError


def _retry(**overrides):
    values = {
        "id": uuid.uuid4(),
        "payment_id": uuid.uuid4(),
        "operation": RetryOperation.CREATE_REFUND.value,
        "payload": {"gateway_payment_id": "pay_1", "amount_paise": 141600},
        "attempt_count": 0,
        "max_retries": DEFAULT_MAX_RETRIES,
        "resolved": False,
        "in_dlq": False,
        "last_error": None,
        "gateway_reference": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def retry_repo():
    """Repository whose update writes through to the tracked record."""
    repo = AsyncMock()
    tracked = {}

    async def _update(id, **data):
        row = tracked.get(id)
        if row is not None:
            for key, value in data.items():
                setattr(row, key, value)
        return row

    repo.update.side_effect = _update
    repo.track = lambda row: tracked.setdefault(row.id, row)
    repo.get_by_id.side_effect = lambda id: tracked.get(id)
    return repo


@pytest.fixture
def service(mock_session, retry_repo):
    svc = PaymentRetryService(mock_session)
    svc.core.retry_repo = retry_repo
    svc.core.payment_repo = AsyncMock()
    svc.processor.retry_repo = retry_repo
    svc.dlq_manager.retry_repo = retry_repo
    svc.stats_manager.retry_repo = retry_repo
    return svc


@pytest.fixture
def gateway():
    gw = MagicMock()
    gw.create_refund = AsyncMock(return_value={"id": "rfnd_1"})
    return gw


class TestCreateRetryRecord:
    """Tests for PaymentRetryCore.create_retry_record."""

    @pytest.mark.asyncio
    async def test_new_record_scheduled_after_base_delay(self, service, retry_repo):
        retry_repo.get_by_idempotency_key.return_value = None
        retry_repo.create.side_effect = lambda **kw: SimpleNamespace(
            id=uuid.uuid4(), **kw
        )
        before = utc_now()

        record = await service.create_retry_record(
            uuid.uuid4(),
            RetryOperation.CREATE_REFUND,
            {"gateway_payment_id": "pay_1", "amount_paise": 100},
            Decimal("1.00"),
            "refund_abc",
            "timeout",
        )

        assert record.operation == "create_refund"
        assert record.attempt_count == 0
        assert record.in_dlq is False
        assert record.next_retry_at >= before + timedelta(seconds=BASE_RETRY_DELAY_SECONDS)

    @pytest.mark.asyncio
    async def test_existing_record_is_refreshed(self, service, retry_repo):
        existing = _retry()
        retry_repo.track(existing)
        retry_repo.get_by_idempotency_key.return_value = existing

        record = await service.create_retry_record(
            uuid.uuid4(),
            RetryOperation.CREATE_REFUND,
            {"gateway_payment_id": "pay_1", "amount_paise": 100},
            Decimal("1.00"),
            "refund_abc",
            "second failure",
        )

        assert record is existing
        assert existing.last_error == "second failure"
        retry_repo.create.assert_not_called()

    def test_backoff_grows_with_attempts(self, service):
        now = utc_now()

        first = service.core.calculate_next_retry_time(0, now) - now
        third = service.core.calculate_next_retry_time(2, now) - now

        assert third > first


class TestProcessPendingRetries:
    """Tests for the batch processor and single-retry handler."""

    @pytest.mark.asyncio
    async def test_empty_batch(self, service, retry_repo, gateway):
        retry_repo.find_pending_retries.return_value = []

        stats = await service.process_pending_retries(gateway)

        assert stats == {
            "processed": 0, "successful": 0, "failed": 0, "moved_to_dlq": 0,
        }
        gateway.create_refund.assert_not_called()

    @pytest.mark.asyncio
    async def test_success_resolves_and_marks_refunded(
        self, service, retry_repo, gateway, mock_session
    ):
        retry = retry_repo.track(_retry())
        retry_repo.find_pending_retries.return_value = [retry]

        stats = await service.process_pending_retries(gateway)

        assert stats["successful"] == 1
        gateway.create_refund.assert_awaited_once_with("pay_1", 141600, notes=None)
        assert retry.resolved is True
        assert retry.gateway_reference == "rfnd_1"
        assert retry.attempt_count == 1
        service.core.payment_repo.update.assert_awaited_once_with(
            retry.payment_id, status="refunded"
        )
        mock_session.commit.assert_awaited()

    @pytest.mark.asyncio
    async def test_transient_failure_reschedules(self, service, retry_repo, gateway):
        retry = retry_repo.track(_retry())
        retry_repo.find_pending_retries.return_value = [retry]
        gateway.create_refund.side_effect = PaymentGatewayError("down", status_code=503)

        stats = await service.process_pending_retries(gateway)

        assert stats["failed"] == 1
        assert retry.in_dlq is False
        assert retry.last_error == "down"
        assert retry.next_retry_at > utc_now()

    @pytest.mark.asyncio
    async def test_client_error_goes_to_dlq(self, service, retry_repo, gateway):
        retry = retry_repo.track(_retry())
        retry_repo.find_pending_retries.return_value = [retry]
        gateway.create_refund.side_effect = PaymentGatewayError(
            "already refunded", status_code=400
        )

        stats = await service.process_pending_retries(gateway)

        assert stats["moved_to_dlq"] == 1
        assert retry.in_dlq is True
        assert retry.next_retry_at is None

    @pytest.mark.asyncio
    async def test_last_attempt_goes_to_dlq(self, service, retry_repo, gateway):
        retry = retry_repo.track(_retry(attempt_count=DEFAULT_MAX_RETRIES - 1))
        retry_repo.find_pending_retries.return_value = [retry]
        gateway.create_refund.side_effect = PaymentGatewayError("timeout")

        stats = await service.process_pending_retries(gateway)

        assert stats["moved_to_dlq"] == 1
        assert retry.in_dlq is True

    @pytest.mark.asyncio
    async def test_unsupported_operation_goes_to_dlq(
        self, service, retry_repo, gateway
    ):
        retry = retry_repo.track(_retry(operation="create_payout"))
        retry_repo.find_pending_retries.return_value = [retry]

        stats = await service.process_pending_retries(gateway)

        assert stats["moved_to_dlq"] == 1
        assert "Unsupported" in retry.last_error

    @pytest.mark.asyncio
    async def test_bookkeeping_error_does_not_stop_batch(
        self, service, retry_repo, gateway, mock_session
    ):
        broken = retry_repo.track(_retry())
        healthy = retry_repo.track(_retry())
        retry_repo.find_pending_retries.return_value = [broken, healthy]
        original = retry_repo.update.side_effect

        async def _update(id, **data):
            if id == broken.id:
                raise RuntimeError("db gone")
            return await original(id, **data)

        retry_repo.update.side_effect = _update

        stats = await service.process_pending_retries(gateway)

        assert stats == {
            "processed": 2, "successful": 1, "failed": 1, "moved_to_dlq": 0,
        }
        # Once for the failed record, once more when charging the attempt fails
        assert mock_session.rollback.await_count == 2

    @pytest.mark.asyncio
    async def test_malformed_gateway_reply_charges_attempt(
        self, service, retry_repo, gateway
    ):
        retry = retry_repo.track(_retry())
        retry_repo.find_pending_retries.return_value = [retry]
        gateway.create_refund.return_value = None

        stats = await service.process_pending_retries(gateway)

        assert stats["failed"] == 1
        assert retry.resolved is False
        assert retry.last_error
        assert retry.next_retry_at > utc_now()

    @pytest.mark.asyncio
    async def test_record_resolved_meanwhile_is_skipped(
        self, service, retry_repo, gateway
    ):
        done = retry_repo.track(_retry(resolved=True))
        retry_repo.find_pending_retries.return_value = [done]

        stats = await service.process_pending_retries(gateway)

        assert stats["processed"] == 0
        gateway.create_refund.assert_not_called()


class TestDeadLetterQueue:
    """Manual DLQ re-drive."""

    @pytest.mark.asyncio
    async def test_retry_dlq_item_success(self, service, retry_repo, gateway):
        retry = retry_repo.track(_retry(in_dlq=True, attempt_count=5))
        retry_repo.get_for_update.return_value = retry

        ok, reference, error = await service.retry_dlq_item(retry.id, gateway)

        assert (ok, reference, error) == (True, "rfnd_1", None)
        assert retry.in_dlq is False
        assert retry.attempt_count == 1

    @pytest.mark.asyncio
    async def test_retry_missing_item(self, service, retry_repo, gateway):
        retry_repo.get_for_update.return_value = None

        assert await service.retry_dlq_item(uuid.uuid4(), gateway) == (
            False, None, "Retry record not found",
        )

    @pytest.mark.asyncio
    async def test_retry_resolved_item(self, service, retry_repo, gateway):
        retry_repo.get_for_update.return_value = _retry(resolved=True)

        ok, _, error = await service.retry_dlq_item(uuid.uuid4(), gateway)

        assert ok is False
        assert error == "Payment already resolved"
        gateway.create_refund.assert_not_called()

    @pytest.mark.asyncio
    async def test_stats_are_renamed(self, service, retry_repo):
        retry_repo.get_stats.return_value = {
            "pending": 2,
            "dlq": 1,
            "resolved": 7,
            "total_amount": Decimal("300"),
            "dlq_amount": Decimal("100"),
        }

        stats = await service.get_retry_stats()

        assert stats["pending_retries"] == 2
        assert stats["dlq_items"] == 1
        assert stats["dlq_amount"] == Decimal("100")
