"""sheetcrm Core Store -- 表格存储实现

提供工厂函数创建共享同一 backend 的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from ..config import SheetConfig
from ..schema import SchemaRegistry
from .bootstrap import ensure_headers
from .cache import InMemoryRecordCache, invalidate_safely
from .event_log_store import EventLogRepository
from .memory_backend import InMemoryTableBackend
from .sqlite_backend import SqliteTableBackend, init_backend_db
from .table_store import TabularRecordStore


class StoreGroup:
    """Store 实例组 -- 共享同一个 backend 与快取"""

    def __init__(
        self,
        backend,
        config: SheetConfig | None = None,
        conn: aiosqlite.Connection | None = None,
    ) -> None:
        self.config = config or SheetConfig()
        self.conn = conn
        self.backend = backend
        self.table_store = TabularRecordStore(backend)
        self.registry = SchemaRegistry.from_config(self.config)
        self.cache = InMemoryRecordCache(ttl_s=self.config.cache_ttl_s)
        self.event_log_repository = EventLogRepository(
            self.table_store,
            registry=self.registry,
            cache=self.cache,
        )

    async def close(self) -> None:
        if self.conn is not None:
            await self.conn.close()
            self.conn = None


async def create_store_group(db_path: str, config: SheetConfig | None = None) -> StoreGroup:
    """创建基于 SQLite backend 的 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        config: 工作表配置，None 时使用默认值

    Returns:
        StoreGroup 实例（事件工作表标题行已就绪）
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_backend_db(conn)

    group = StoreGroup(SqliteTableBackend(conn), config=config, conn=conn)
    await ensure_headers(group.table_store, group.registry)
    return group


__all__ = [
    "StoreGroup",
    "create_store_group",
    "EventLogRepository",
    "TabularRecordStore",
    "InMemoryTableBackend",
    "SqliteTableBackend",
    "InMemoryRecordCache",
    "init_backend_db",
    "ensure_headers",
    "invalidate_safely",
]
