"""InMemoryRecordCache 测试"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sheetcrm.core.store.cache import InMemoryRecordCache, invalidate_safely


class TestInMemoryRecordCache:
    async def test_loader_called_once(self):
        cache = InMemoryRecordCache()
        loader = AsyncMock(return_value=("a",))

        assert await cache.get_or_populate("k", loader) == ("a",)
        assert await cache.get_or_populate("k", loader) == ("a",)
        loader.assert_awaited_once()

    async def test_invalidate_key_and_all(self):
        cache = InMemoryRecordCache()
        await cache.get_or_populate("a", AsyncMock(return_value=1))
        await cache.get_or_populate("b", AsyncMock(return_value=2))

        cache.invalidate("a")
        assert cache.peek("a") is None
        assert cache.peek("b") == 2

        cache.invalidate()
        assert cache.peek("b") is None

    async def test_loader_error_not_cached(self):
        cache = InMemoryRecordCache()
        with pytest.raises(RuntimeError):
            await cache.get_or_populate("k", AsyncMock(side_effect=RuntimeError("boom")))
        assert cache.peek("k") is None

    async def test_ttl_expiry(self):
        now = [100.0]
        cache = InMemoryRecordCache(ttl_s=30, clock=lambda: now[0])
        loader = AsyncMock(side_effect=[1, 2])

        assert await cache.get_or_populate("k", loader) == 1
        now[0] += 31
        assert await cache.get_or_populate("k", loader) == 2

    async def test_zero_ttl_never_expires(self):
        now = [0.0]
        cache = InMemoryRecordCache(ttl_s=0, clock=lambda: now[0])
        await cache.get_or_populate("k", AsyncMock(return_value=1))
        now[0] += 10_000
        assert cache.peek("k") == 1


class TestInvalidateSafely:
    def test_absorbs_failure(self):
        cache = MagicMock()
        cache.invalidate.side_effect = RuntimeError("down")
        invalidate_safely(cache, "event_logs")
        cache.invalidate.assert_called_once_with("event_logs")

    def test_missing_cache_ignored(self):
        invalidate_safely(None, "event_logs")
