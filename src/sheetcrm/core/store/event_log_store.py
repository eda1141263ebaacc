"""EventLogRepository -- 按事件类型读写事件紀录

create / update / delete 以 schema 为准逐栏组装整行，再交给 TabularRecordStore；
每次写入后尽力失效事件列表快取。update 是无锁的读-改-写：
并发更新同一行时以最后写入为准，修订版次只是元数据，不是并发控制手段。
"""

import asyncio
import re
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from ..config import ARCHIVED_STATUS, EVENT_LOGS_CACHE_KEY
from ..exceptions import InvalidArgumentError
from ..ids import EventIdGenerator, to_iso, utc_now
from ..models.enums import ColumnRole, EventLogType
from ..models.event_record import EventRecord, MutationResult, PinnedIdentity
from ..schema import SchemaRegistry
from .cache import InMemoryRecordCache, invalidate_safely
from .protocols import RecordCache
from .table_store import TabularRecordStore

log = structlog.get_logger()

_LEADING_INT = re.compile(r"^\s*(\d+)")
_EPOCH = datetime.min.replace(tzinfo=UTC)


def render_cell(value: Any) -> str:
    """领域值 -> 储存格字符串"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def parse_revision(value: str) -> int:
    """解析修订版次，无法解析（或为 0）时视为 1"""
    match = _LEADING_INT.match(value or "")
    if not match:
        return 1
    return int(match.group(1)) or 1


def parse_row_index(value: Any) -> int:
    """校验 rowIndex：必须是大于 1 的整数（第 1 行是标题行）

    Raises:
        InvalidArgumentError: 非整数或 <= 1
    """
    parsed: int | None = None
    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, int):
        parsed = value
    elif isinstance(value, float) and value.is_integer():
        parsed = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())

    if parsed is None or parsed <= 1:
        raise InvalidArgumentError(f"无效的 rowIndex: {value!r}")
    return parsed


def _sort_key(record: EventRecord) -> datetime:
    try:
        ts = datetime.fromisoformat(record.sort_time)
    except ValueError:
        return _EPOCH
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


class EventLogRepository:
    """事件紀录仓储

    事件依 event_type 分布在四张工作表；同一时刻一条记录只存在于一张表。
    """

    def __init__(
        self,
        table_store: TabularRecordStore,
        registry: SchemaRegistry | None = None,
        cache: RecordCache | None = None,
        id_generator: EventIdGenerator | None = None,
        clock: Callable[[], datetime] = utc_now,
        archived_status: str = ARCHIVED_STATUS,
    ) -> None:
        self._table_store = table_store
        self._registry = registry or SchemaRegistry()
        self._cache = cache if cache is not None else InMemoryRecordCache()
        self._id_generator = id_generator or EventIdGenerator(clock=clock)
        self._clock = clock
        self._archived_status = archived_status

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def _now(self) -> str:
        return to_iso(self._clock())

    def _invalidate(self) -> None:
        invalidate_safely(self._cache, EVENT_LOGS_CACHE_KEY)

    async def create(
        self,
        data: Mapping[str, Any],
        creator: str,
        pinned: PinnedIdentity | None = None,
    ) -> MutationResult:
        """建立事件紀录

        流程：
        1. 依 data["event_type"] 决定工作表与 schema
        2. 产生 event_id（pinned 时沿用）
        3. 逐栏组装：身份/建立者/时间/版次自动填入，其余取 data 中对应 key，缺少为空
        4. 追加到工作表并失效快取

        Args:
            data: 以领域 key 为键的事件内容
            creator: 建立者显示名称
            pinned: 跨表搬移时强制沿用的身份信息（event_id、建立时间、建立者、版次）
        """
        event_type = EventLogType.parse(data.get("event_type"))
        schema = self._registry.schema_for(event_type)
        now = self._now()

        event_id = pinned.event_id if pinned else self._id_generator.next_id()
        created_time = (pinned.created_time if pinned else "") or now
        creator_value = (pinned.creator if pinned else "") or creator
        revision = pinned.edit_count if pinned else "1"

        log.info(
            "event_log_create_started",
            event_id=event_id,
            event_type=event_type.value,
            event_name=data.get("event_name", ""),
            creator=creator_value,
        )

        row: list[str] = []
        for col in schema.columns:
            key = self._registry.resolve_key(col.label, event_type)
            if col.role == ColumnRole.IDENTITY:
                row.append(event_id)
            elif col.role == ColumnRole.CREATOR:
                row.append(creator_value)
            elif col.role == ColumnRole.CREATED_TIME:
                row.append(created_time)
            elif col.role == ColumnRole.MODIFIED_TIME:
                row.append(now)
            elif col.role == ColumnRole.REVISION:
                row.append(revision)
            else:
                row.append(render_cell(data.get(key)) if key else "")

        row_index = await self._table_store.append(schema.table_name, row)
        self._invalidate()

        log.info(
            "event_log_created",
            event_id=event_id,
            table=schema.table_name,
            row_index=row_index,
        )
        return MutationResult(success=True, id=event_id, row_index=row_index)

    async def update(
        self,
        row_index: Any,
        data: Mapping[str, Any],
        modifier: str,
    ) -> MutationResult:
        """原位更新事件紀录（部分更新）

        未提供（或为 None）的栏位保持原值；最后修改时间刷新；修订版次 +1；
        建立者、建立时间可由 payload 显式改写；身份栏位（event_id）始终不变。

        Raises:
            InvalidArgumentError: rowIndex 非整数或 <= 1
            RecordNotFoundError: 该行不存在
            StoreFailureError: 底层表格调用失败
        """
        index = parse_row_index(row_index)
        event_type = EventLogType.parse(data.get("event_type"))
        schema = self._registry.schema_for(event_type)

        log.info(
            "event_log_update_started",
            table=schema.table_name,
            row_index=index,
            event_type=event_type.value,
            modifier=modifier,
        )

        # 先读旧资料：保留未传入的栏位，并计算修订版次（短行补齐到 schema 宽度）
        current = await self._table_store.read_row(schema.table_name, index, schema.width)
        now = self._now()

        for position, col in enumerate(schema.columns):
            key = self._registry.resolve_key(col.label, event_type)
            if col.role == ColumnRole.MODIFIED_TIME:
                current[position] = now
            elif col.role == ColumnRole.REVISION:
                current[position] = str(parse_revision(current[position]) + 1)
            elif col.role == ColumnRole.IDENTITY:
                continue
            elif key and data.get(key) is not None:
                current[position] = render_cell(data[key])

        await self._table_store.write_row(schema.table_name, index, current)
        self._invalidate()

        id_position = schema.index_of("event_id")
        event_id = current[id_position] if id_position is not None else None
        log.info("event_log_updated", event_id=event_id, row_index=index)
        return MutationResult(success=True, id=event_id, row_index=index)

    async def delete(self, row_index: Any, event_type: EventLogType | str | None) -> MutationResult:
        """删除事件紀录所在的物理行

        不先检查是否存在；删除已不存在的行不视为错误。
        """
        index = parse_row_index(row_index)
        table = self._registry.table_name_for(event_type)
        log.info("event_log_delete_started", table=table, row_index=index)

        await self._table_store.delete_row(table, index)
        self._invalidate()
        return MutationResult(success=True, row_index=index)

    async def _read_type(self, event_type: EventLogType) -> list[EventRecord]:
        schema = self._registry.schema_for(event_type)
        rows = await self._table_store.read_all(schema.table_name, schema.width)
        return [
            self._registry.row_to_record(row, event_type, row_index)
            for row_index, row in rows
        ]

    async def _load_all(self) -> tuple[EventRecord, ...]:
        """并行读取四张事件表，合并后按时间倒序"""
        per_type = await asyncio.gather(
            *(self._read_type(event_type) for event_type in EventLogType)
        )
        records = [record for group in per_type for record in group]
        records.sort(key=_sort_key, reverse=True)
        log.debug("event_logs_loaded", count=len(records))
        return tuple(records)

    async def list_events(
        self,
        include_archived: bool = False,
        event_type: EventLogType | str | None = None,
    ) -> list[EventRecord]:
        """列出事件紀录（最后修改时间倒序，未修改退回建立时间）

        默认排除状态为封存的记录；event_type 不为 None 时只返回该类型。
        """
        records = await self._cache.get_or_populate(EVENT_LOGS_CACHE_KEY, self._load_all)
        wanted_type = EventLogType.parse(event_type) if event_type is not None else None
        return [
            record
            for record in records
            if (include_archived or record.status != self._archived_status)
            and (wanted_type is None or record.event_type == wanted_type)
        ]

    async def get_by_id(self, event_id: str) -> EventRecord | None:
        """按 event_id 查找（含封存记录）"""
        if not event_id:
            return None
        for record in await self.list_events(include_archived=True):
            if record.event_id == event_id:
                return record
        return None
