"""EventLogService -- 事件紀录的关联与展示

Join 逻辑集中在本服务：读取时把机会名称、公司名称附加到副本上，
快取中的 EventRecord 永不被修改；所有返回对象都是新实例。
类型变更的更新交给 EventTypeMigrator（delete + create）。
"""

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from pydantic import BaseModel, Field
from sheetcrm.core.exceptions import RecordNotFoundError
from sheetcrm.core.ids import to_iso, utc_now
from sheetcrm.core.migration import EventTypeMigrator, needs_move, resolve_original
from sheetcrm.core.models import (
    Company,
    ConfigItem,
    EventRecord,
    EventView,
    MutationResult,
    Opportunity,
)
from sheetcrm.core.readers import EVENT_TYPE_CATEGORY
from sheetcrm.core.store.event_log_store import EventLogRepository
from sheetcrm.core.store.protocols import (
    CompanySource,
    OpportunitySource,
    SystemConfigSource,
)

from .calendar import CalendarEventPayload, CalendarSink

log = structlog.get_logger()

DEFAULT_MODIFIER = "System"
CALENDAR_EVENT_DURATION = timedelta(hours=1)


class UserContext(BaseModel):
    """操作者信息"""

    display_name: str | None = Field(default=None, description="显示名称")
    username: str | None = Field(default=None, description="登录名")


def resolve_modifier(user: UserContext | None) -> str:
    """显示名称 > 登录名 > System"""
    if user is None:
        return DEFAULT_MODIFIER
    return user.display_name or user.username or DEFAULT_MODIFIER


def _is_sync_requested(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def _as_row_index(value: Any) -> int | None:
    """路径参数 -> 行号候选；非数字（例如 event_id）返回 None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _name_maps(
    opportunities: Sequence[Opportunity],
    companies: Sequence[Company],
) -> tuple[dict[str, str], dict[str, str]]:
    return (
        {o.opportunity_id: o.opportunity_name for o in opportunities},
        {c.company_id: c.company_name for c in companies},
    )


def _to_view(
    record: EventRecord,
    opportunity_names: Mapping[str, str] | None = None,
    company_names: Mapping[str, str] | None = None,
) -> EventView:
    """EventRecord -> 新的 EventView 实例（名称未命中时退回原始 ID）"""
    view = EventView(**record.model_dump(), id=record.event_id)
    if opportunity_names is not None and record.opportunity_id:
        view.opportunity_name = (
            opportunity_names.get(record.opportunity_id) or record.opportunity_id
        )
    if company_names is not None and record.company_id:
        view.company_name = company_names.get(record.company_id) or record.company_id
    return view


class EventLogService:
    """事件紀录服务

    依赖注入：repository、migrator 以及机会/公司/系统设定 reader，
    calendar 为可选的日历同步目标。
    """

    def __init__(
        self,
        repository: EventLogRepository,
        migrator: EventTypeMigrator | None = None,
        opportunities: OpportunitySource | None = None,
        companies: CompanySource | None = None,
        system_config: SystemConfigSource | None = None,
        calendar: CalendarSink | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._migrator = migrator or EventTypeMigrator(repository)
        self._opportunities = opportunities
        self._companies = companies
        self._system_config = system_config
        self._calendar = calendar
        self._clock = clock

    async def _fetch_opportunities(self) -> list[Opportunity]:
        if self._opportunities is None:
            return []
        return await self._opportunities.get_opportunities()

    async def _fetch_companies(self) -> list[Company]:
        if self._companies is None:
            return []
        return await self._companies.get_company_list()

    async def get_all_events(self, include_archived: bool = False) -> list[EventView]:
        """并行读取事件、机会、公司后关联；任何读取失败返回空列表"""
        try:
            records, opportunities, companies = await asyncio.gather(
                self._repository.list_events(include_archived=include_archived),
                self._fetch_opportunities(),
                self._fetch_companies(),
            )
        except Exception as e:
            log.error("get_all_events_failed", error=str(e), error_type=type(e).__name__)
            return []

        opportunity_names, company_names = _name_maps(opportunities, companies)
        return [_to_view(record, opportunity_names, company_names) for record in records]

    async def get_event_by_id(self, event_id: str) -> EventView | None:
        """按 event_id 读取单条事件

        事件读取失败返回 None；关联数据读取失败时返回未关联的副本。
        """
        try:
            record = await self._repository.get_by_id(event_id)
        except Exception as e:
            log.error("get_event_by_id_failed", event_id=event_id, error=str(e))
            return None
        if record is None:
            return None

        try:
            opportunities, companies = await asyncio.gather(
                self._fetch_opportunities(),
                self._fetch_companies(),
            )
        except Exception as e:
            log.warning("event_join_failed", event_id=event_id, error=str(e))
            return _to_view(record)

        opportunity_names, company_names = _name_maps(opportunities, companies)
        return _to_view(record, opportunity_names, company_names)

    async def create_event(
        self,
        data: Mapping[str, Any],
        user: UserContext | None = None,
    ) -> MutationResult:
        """建立事件；sync_to_calendar 为 true 时同步到日历（失败不影响结果）"""
        creator = resolve_modifier(user)
        try:
            result = await self._repository.create(data, creator)
        except Exception as e:
            log.error("create_event_failed", creator=creator, error=str(e))
            raise

        if result.success and _is_sync_requested(data.get("sync_to_calendar")):
            await self._sync_to_calendar(data)
        return result

    async def _sync_to_calendar(self, data: Mapping[str, Any]) -> None:
        if self._calendar is None:
            log.info("calendar_sync_skipped", reason="calendar_not_configured")
            return
        try:
            created_time = data.get("created_time")
            start = datetime.fromisoformat(created_time) if created_time else self._clock()
            if start.tzinfo is None:
                # 未带时区按 UTC
                start = start.replace(tzinfo=UTC)
            payload = CalendarEventPayload(
                summary=f"[{data.get('event_type', '')}] {data.get('event_name', '')}",
                description=data.get("event_content") or "",
                start=to_iso(start),
                end=to_iso(start + CALENDAR_EVENT_DURATION),
            )
            await self._calendar.create_event(payload)
        except Exception as e:
            log.warning(
                "calendar_sync_failed",
                event_name=data.get("event_name", ""),
                error=str(e),
                error_type=type(e).__name__,
            )

    async def update_event(
        self,
        id_or_row_index: Any,
        data: Mapping[str, Any],
        modifier: str = DEFAULT_MODIFIER,
    ) -> MutationResult:
        """更新事件（接受 event_id 或 rowIndex）

        流程：
        1. 定位原始记录：payload 或路径中的 event_id 精确匹配优先，其次按 rowIndex 猜测
           （优先 payload 的 event_type；多张表同时命中时拒绝）
        2. 解析目标行号：路径是 event_id 时取其当前行号，找不到则 RecordNotFoundError
        3. 事件类型变更 -> 搬移；否则原位更新（payload 未指定类型时沿用原记录类型）

        Raises:
            InvalidArgumentError / RecordNotFoundError / StoreFailureError / MigrationFailureError
        """
        records = await self._repository.list_events(include_archived=True)

        candidate_row = _as_row_index(id_or_row_index)
        path_event_id = str(id_or_row_index) if candidate_row is None else None
        event_id = data.get("event_id") or data.get("id") or path_event_id

        resolved = resolve_original(
            records, event_id, candidate_row, data.get("event_type")
        )

        if candidate_row is None:
            target = next((r for r in records if r.event_id == path_event_id), None)
            if target is None:
                raise RecordNotFoundError(f"找不到事件: {path_event_id}")
            row_index: Any = target.row_index
        else:
            row_index = candidate_row

        if resolved is not None:
            log.debug(
                "original_record_resolved",
                event_id=resolved.record.event_id,
                confidence=resolved.confidence.value,
            )
            if needs_move(resolved.record, data):
                return await self._migrator.move(resolved.record, data, modifier)

        payload = dict(data)
        if not payload.get("event_type") and resolved is not None:
            payload["event_type"] = resolved.record.event_type.value

        try:
            return await self._repository.update(row_index, payload, modifier)
        except Exception as e:
            log.error("update_event_failed", row_index=row_index, error=str(e))
            raise

    async def delete_event(self, row_index: Any, event_type: str | None) -> MutationResult:
        try:
            return await self._repository.delete(row_index, event_type)
        except Exception as e:
            log.error("delete_event_failed", row_index=row_index, error=str(e))
            raise

    async def get_event_types(self) -> list[ConfigItem]:
        """系统设定中的事件类型列表，读取失败返回空列表"""
        if self._system_config is None:
            return []
        try:
            config = await self._system_config.get_system_config()
        except Exception as e:
            log.error("get_event_types_failed", error=str(e))
            return []
        return list(config.get(EVENT_TYPE_CATEGORY, []))
