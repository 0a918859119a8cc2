"""Unit tests for the Redis lock helper with a mocked client."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from redis.exceptions import LockNotOwnedError

from rental_inventory.storage.redis_locks import RedisLockHelper


@pytest.fixture
def mock_client():
    """Mock redis.asyncio client."""
    client = MagicMock()
    client.lock.return_value.acquire = AsyncMock(return_value=True)
    client.lock.return_value.release = AsyncMock()
    client.exists = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


def test_lock_key_is_namespaced_per_service():
    service_id = uuid4()

    assert RedisLockHelper.lock_key(service_id) == f"rie:lock:service:{service_id}"


@pytest.mark.asyncio
async def test_acquire_and_release(mock_client):
    helper = RedisLockHelper("redis://localhost", ttl_seconds=7, wait_timeout_seconds=2.5, client=mock_client)
    service_id = uuid4()

    async with helper.acquire_service_lock(service_id) as acquired:
        assert acquired is True

    mock_client.lock.assert_called_once_with(
        f"rie:lock:service:{service_id}", timeout=7, sleep=0.05, blocking_timeout=2.5
    )
    mock_client.lock.return_value.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_not_acquired_is_not_released(mock_client):
    mock_client.lock.return_value.acquire = AsyncMock(return_value=False)
    helper = RedisLockHelper("redis://localhost", client=mock_client)

    async with helper.acquire_service_lock(uuid4(), wait_timeout=0.1) as acquired:
        assert acquired is False

    assert mock_client.lock.call_args.kwargs["blocking_timeout"] == 0.1
    mock_client.lock.return_value.release.assert_not_awaited()


@pytest.mark.asyncio
async def test_release_after_ttl_expiry_is_tolerated(mock_client):
    mock_client.lock.return_value.release = AsyncMock(side_effect=LockNotOwnedError("expired"))
    helper = RedisLockHelper("redis://localhost", client=mock_client)

    async with helper.acquire_service_lock(uuid4()) as acquired:
        assert acquired

    mock_client.lock.return_value.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_requires_connection():
    helper = RedisLockHelper("redis://localhost")

    with pytest.raises(RuntimeError):
        async with helper.acquire_service_lock(uuid4()):
            pass


@pytest.mark.asyncio
async def test_ping(mock_client):
    helper = RedisLockHelper("redis://localhost", client=mock_client)

    assert await helper.ping()


@pytest.mark.asyncio
async def test_disconnect_closes_client(mock_client):
    helper = RedisLockHelper("redis://localhost", client=mock_client)

    await helper.disconnect()

    mock_client.aclose.assert_awaited_once()
