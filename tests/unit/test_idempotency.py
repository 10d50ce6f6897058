"""Unit tests for idempotency keys and in-flight deduplication."""

import asyncio
import re

import pytest

from app.services.payment_retry import IdempotencyGuard, generate_idempotency_key
from app.utils.exceptions import DuplicateRequestError


KEY_FORMAT = re.compile(r"^project_order_[0-9a-f]{16}$")


class TestGenerateIdempotencyKey:
    """Tests for deterministic key derivation."""

    def test_same_request_same_bucket_same_key(self):
        payload = {"project_id": "p1", "amount": "1416.00"}
        first = generate_idempotency_key("u1", "project_order", payload, now=960.0)
        second = generate_idempotency_key("u1", "project_order", payload, now=1019.0)
        assert first == second
        assert KEY_FORMAT.match(first)

    def test_payload_key_order_does_not_matter(self):
        a = generate_idempotency_key("u1", "op", {"a": 1, "b": 2}, now=0)
        b = generate_idempotency_key("u1", "op", {"b": 2, "a": 1}, now=0)
        assert a == b

    def test_next_bucket_changes_key(self):
        payload = {"amount": "100"}
        first = generate_idempotency_key("u1", "op", payload, now=1019.0)
        second = generate_idempotency_key("u1", "op", payload, now=1020.0)
        assert first != second

    @pytest.mark.parametrize(
        "user_id, operation, payload",
        [
            ("u2", "op", {"amount": "100"}),
            ("u1", "other", {"amount": "100"}),
            ("u1", "op", {"amount": "101"}),
        ],
    )
    def test_any_input_change_changes_key(self, user_id, operation, payload):
        base = generate_idempotency_key("u1", "op", {"amount": "100"}, now=0)
        assert generate_idempotency_key(user_id, operation, payload, now=0) != base

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            generate_idempotency_key("u1", "op", {}, window_seconds=0)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestIdempotencyGuard:
    """Tests for single-flight execution."""

    @pytest.mark.asyncio
    async def test_concurrent_duplicates_share_one_execution(self):
        guard = IdempotencyGuard()
        release = asyncio.Event()
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            await release.wait()
            return {"id": "order_1"}

        first = asyncio.create_task(guard.run("key", operation))
        await asyncio.sleep(0)
        second = asyncio.create_task(guard.run("key", operation))
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(first, second)

        assert calls == 1
        assert results == [{"id": "order_1"}, {"id": "order_1"}]

    @pytest.mark.asyncio
    async def test_completed_result_is_replayed_within_ttl(self):
        clock = FakeClock()
        guard = IdempotencyGuard(ttl_seconds=60, clock=clock)
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            return calls

        assert await guard.run("key", operation) == 1
        clock.now = 30
        assert await guard.run("key", operation) == 1
        clock.now = 61
        assert await guard.run("key", operation) == 2

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        guard = IdempotencyGuard()
        attempts = 0

        async def operation():
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("gateway down")
            return "ok"

        with pytest.raises(RuntimeError):
            await guard.run("key", operation)

        assert await guard.run("key", operation) == "ok"
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_key_claimed_elsewhere_raises_duplicate(self, mock_redis_client):
        mock_redis_client.set.return_value = None
        guard = IdempotencyGuard(mock_redis_client, ttl_seconds=60)
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1

        with pytest.raises(DuplicateRequestError):
            await guard.run("key", operation)

        assert calls == 0
        mock_redis_client.set.assert_awaited_once_with(
            "idempotency:key", "1", nx=True, ex=60
        )
        mock_redis_client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_claim_released_when_operation_fails(self, mock_redis_client):
        guard = IdempotencyGuard(mock_redis_client)

        async def operation():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await guard.run("key", operation)

        mock_redis_client.delete.assert_awaited_once_with("idempotency:key")

    @pytest.mark.asyncio
    async def test_claim_kept_after_success(self, mock_redis_client):
        guard = IdempotencyGuard(mock_redis_client)

        async def operation():
            return "done"

        assert await guard.run("key", operation) == "done"
        mock_redis_client.delete.assert_not_awaited()
