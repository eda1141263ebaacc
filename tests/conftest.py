"""全局 pytest 配置 -- 内存/SQLite 表格 backend + 仓储 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from sheetcrm.core.ids import EventIdGenerator
from sheetcrm.core.schema import SchemaRegistry
from sheetcrm.core.store import (
    EventLogRepository,
    InMemoryRecordCache,
    InMemoryTableBackend,
    SqliteTableBackend,
    TabularRecordStore,
    ensure_headers,
    init_backend_db,
)


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 9, 8, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> SchemaRegistry:
    return SchemaRegistry()


@pytest.fixture
def backend() -> InMemoryTableBackend:
    return InMemoryTableBackend()


@pytest.fixture
def table_store(backend: InMemoryTableBackend) -> TabularRecordStore:
    return TabularRecordStore(backend)


@pytest.fixture
def cache() -> InMemoryRecordCache:
    return InMemoryRecordCache()


@pytest_asyncio.fixture
async def repository(
    table_store: TabularRecordStore,
    registry: SchemaRegistry,
    cache: InMemoryRecordCache,
    clock: FakeClock,
) -> EventLogRepository:
    """标题行已写入的事件仓储（内存 backend）"""
    await ensure_headers(table_store, registry)
    return EventLogRepository(
        table_store,
        registry=registry,
        cache=cache,
        id_generator=EventIdGenerator(clock=clock),
        clock=clock,
    )


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def sqlite_backend(tmp_db_path: Path) -> AsyncGenerator[SqliteTableBackend, None]:
    """已初始化的 SQLite backend"""
    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_backend_db(conn)
    yield SqliteTableBackend(conn)
    await conn.close()
