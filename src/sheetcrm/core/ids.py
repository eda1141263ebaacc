"""事件 ID 与时间戳生成

事件 ID = 固定前缀 + 毫秒时间戳。同一进程内严格递增：
同一毫秒内重复生成时在上一次的值上加一。
"""

from datetime import UTC, datetime

from .config import EVENT_ID_PREFIX


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(ts: datetime) -> str:
    """UTC ISO-8601，毫秒精度，Z 结尾（例如 2026-01-09T08:30:00.123Z）"""
    return ts.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EventIdGenerator:
    """事件 ID 生成器

    唯一性是概率性的（依赖时间戳），不依赖中央分配器；
    单一部署的单一工作表范围内足够。
    """

    def __init__(self, prefix: str = EVENT_ID_PREFIX, clock=utc_now) -> None:
        self._prefix = prefix
        self._clock = clock
        self._last_ms = 0

    def next_id(self) -> str:
        now_ms = int(self._clock().timestamp() * 1000)
        if now_ms <= self._last_ms:
            now_ms = self._last_ms + 1
        self._last_ms = now_ms
        return f"{self._prefix}{now_ms}"
