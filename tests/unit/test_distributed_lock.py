"""Unit tests for the distributed lock."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.utils.distributed_lock import DistributedLock


class TestRedisLock:
    """Tests for the Redis-backed lock."""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, mock_redis_client):
        lock = DistributedLock(mock_redis_client)

        async with lock.lock("quote_expiry", timeout=30) as acquired:
            assert acquired is True

        key, token = mock_redis_client.set.await_args.args
        assert key == "lock:quote_expiry"
        assert mock_redis_client.set.await_args.kwargs == {"nx": True, "ex": 30}
        eval_args = mock_redis_client.eval.await_args.args
        assert eval_args[1:] == (1, "lock:quote_expiry", token)

    @pytest.mark.asyncio
    async def test_held_elsewhere(self, mock_redis_client):
        mock_redis_client.set.return_value = None
        lock = DistributedLock(mock_redis_client)

        async with lock.lock("quote_expiry") as acquired:
            assert acquired is False

        mock_redis_client.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_released_when_body_raises(self, mock_redis_client):
        lock = DistributedLock(mock_redis_client)

        with pytest.raises(RuntimeError):
            async with lock.lock("payment_retry"):
                raise RuntimeError("job failed")

        mock_redis_client.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_outage_runs_unlocked(self):
        redis_client = AsyncMock()
        redis_client.set.side_effect = RedisConnectionError("down")
        redis_client.eval.side_effect = RedisConnectionError("down")
        lock = DistributedLock(redis_client)

        async with lock.lock("push_cleanup") as acquired:
            assert acquired is True


class TestLocalLock:
    @pytest.mark.asyncio
    async def test_second_holder_skips(self):
        lock = DistributedLock()

        async with lock.lock("local_job") as first:
            async with lock.lock("local_job") as second:
                assert first is True
                assert second is False

        async with lock.lock("local_job") as again:
            assert again is True
