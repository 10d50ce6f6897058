"""Unit tests for gateway retry with exponential backoff."""

import asyncio
from unittest.mock import AsyncMock

import aiohttp
import pytest

from app.services.payment_retry import (
    RetryConfig,
    calculate_delay,
    is_retryable_error,
    is_retryable_status,
    retry_with_backoff,
)
from app.utils.exceptions import PaymentGatewayError


def no_jitter() -> float:
    return 0.0


class TestRetryConfig:
    """Tests for backoff parameter validation."""

    def test_defaults(self):
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.initial_delay == 1.0
        assert config.max_delay == 10.0
        assert config.multiplier == 2.0
        assert config.jitter_factor == 0.1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": 0},
            {"initial_delay": 0},
            {"max_delay": -1},
            {"multiplier": 0.5},
            {"jitter_factor": 1.5},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)


class TestCalculateDelay:
    """Tests for the delay formula."""

    def test_exponential_growth_without_jitter(self):
        config = RetryConfig()
        delays = [calculate_delay(n, config, no_jitter) for n in range(1, 5)]
        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_delay_is_capped(self):
        config = RetryConfig()
        assert calculate_delay(6, config, no_jitter) == 10.0

    def test_jitter_adds_at_most_jitter_factor(self):
        config = RetryConfig()
        assert calculate_delay(1, config, lambda: 1.0) == pytest.approx(1.1)
        assert calculate_delay(6, config, lambda: 1.0) == pytest.approx(11.0)

    def test_attempt_is_one_based(self):
        with pytest.raises(ValueError):
            calculate_delay(0, RetryConfig())


class TestRetryClassification:
    """Tests for transient vs permanent failures."""

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_transient_statuses(self, status):
        assert is_retryable_status(status) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422])
    def test_client_errors_are_permanent(self, status):
        assert is_retryable_status(status) is False

    def test_network_error_without_status_is_retryable(self):
        assert is_retryable_error(PaymentGatewayError("unreachable")) is True

    def test_gateway_client_error_is_not_retryable(self):
        error = PaymentGatewayError("bad request", status_code=400)
        assert is_retryable_error(error) is False

    def test_aiohttp_and_timeout_errors_are_retryable(self):
        assert is_retryable_error(aiohttp.ClientConnectionError()) is True
        assert is_retryable_error(asyncio.TimeoutError()) is True

    def test_other_exceptions_are_not_retryable(self):
        assert is_retryable_error(ValueError("boom")) is False


class TestRetryWithBackoff:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        operation = AsyncMock(
            side_effect=[
                PaymentGatewayError("down", status_code=503),
                PaymentGatewayError("down", status_code=502),
                {"id": "order_1"},
            ]
        )
        sleep = AsyncMock()

        result = await retry_with_backoff(
            operation, RetryConfig(), sleep=sleep, rng=no_jitter
        )

        assert result == {"id": "order_1"}
        assert operation.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_permanent_error_fails_immediately(self):
        operation = AsyncMock(
            side_effect=PaymentGatewayError("invalid amount", status_code=400)
        )
        sleep = AsyncMock()

        with pytest.raises(PaymentGatewayError) as exc_info:
            await retry_with_backoff(operation, RetryConfig(), sleep=sleep)

        assert exc_info.value.status_code == 400
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_last_error_raised_when_attempts_exhausted(self):
        operation = AsyncMock(
            side_effect=PaymentGatewayError("still down", status_code=500)
        )
        sleep = AsyncMock()

        with pytest.raises(PaymentGatewayError, match="still down"):
            await retry_with_backoff(
                operation, RetryConfig(max_retries=3), sleep=sleep, rng=no_jitter
            )

        assert operation.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_single_attempt_config_never_sleeps(self):
        operation = AsyncMock(side_effect=PaymentGatewayError("down"))
        sleep = AsyncMock()

        with pytest.raises(PaymentGatewayError):
            await retry_with_backoff(
                operation, RetryConfig(max_retries=1), sleep=sleep
            )

        sleep.assert_not_awaited()
