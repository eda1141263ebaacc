"""读取端快取

InMemoryRecordCache: 首次读取惰性填充，写入时由调用方失效，进程结束即销毁。
失效属于尽力而为的信号，失败不得影响写入本身（见 invalidate_safely）。
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

log = structlog.get_logger()


class InMemoryRecordCache:
    """RecordCache 的进程内实现

    ttl_s 为 None 或 0 时条目不过期，只在 invalidate 时清除。
    """

    def __init__(self, ttl_s: float | None = None, clock: Callable[[], float] = time.monotonic):
        self._ttl_s = ttl_s or None
        self._clock = clock
        # key -> (写入时间, 值)
        self._entries: dict[str, tuple[float, Any]] = {}

    def peek(self, key: str) -> Any | None:
        """读取当前值（不触发填充，过期视为不存在）"""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._ttl_s is not None and self._clock() - stored_at > self._ttl_s:
            self._entries.pop(key, None)
            return None
        return value

    async def get_or_populate(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """命中直接返回，否则调用 loader 并写入

        loader 抛出的异常直接向上传播，且不写入快取。
        """
        cached = self.peek(key)
        if cached is not None:
            return cached
        value = await loader()
        self._entries[key] = (self._clock(), value)
        return value

    def invalidate(self, key: str | None = None) -> None:
        """失效指定 key，None 表示清空全部"""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


def invalidate_safely(cache, key: str) -> None:
    """尽力失效快取：cache 缺失或失效失败只记录 warning，不向上抛出"""
    if cache is None:
        return
    try:
        cache.invalidate(key)
    except Exception as e:
        log.warning(
            "cache_invalidation_failed",
            cache_key=key,
            error=str(e),
            error_type=type(e).__name__,
        )
