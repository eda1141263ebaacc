"""关联数据 Reader -- 机会案件、公司、系统设定

这些工作表不归本系统写入，仅作为事件显示名称的关联来源。
解析以标题行为准（标题 -> 栏位索引），栏位顺序可与定义不同。
读取失败时记录错误并返回空结果，不向上抛出。
"""

import asyncio
import math
from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from .config import ARCHIVED_STATUS, OPPORTUNITIES_PER_PAGE, OPPORTUNITY_ACTIVE_STATUS
from .models.related import (
    Company,
    ConfigItem,
    Opportunity,
    OpportunityPage,
    Pagination,
    StageGroup,
)
from .store.protocols import SystemConfigSource
from .store.table_store import TabularRecordStore

log = structlog.get_logger()

# 机会案件工作表标题 -> Opportunity 字段
OPPORTUNITY_FIELDS: dict[str, str] = {
    "機會ID": "opportunity_id",
    "機會名稱": "opportunity_name",
    "客戶公司": "customer_company",
    "負責業務": "assignee",
    "機會種類": "opportunity_type",
    "目前階段": "current_stage",
    "目前狀態": "current_status",
    "建立時間": "created_time",
    "最後更新時間": "last_update_time",
}

COMPANY_FIELDS: dict[str, str] = {
    "公司ID": "company_id",
    "公司名稱": "company_name",
    "縣市": "county",
}

SYSTEM_CONFIG_FIELDS: dict[str, str] = {
    "設定類別": "category",
    "設定值": "value",
    "備註": "note",
    "排序": "order",
}

EVENT_TYPE_CATEGORY = "事件類型"
OPPORTUNITY_STAGE_CATEGORY = "機會階段"

_EPOCH = datetime.min.replace(tzinfo=UTC)


def build_header_map(header_row: Sequence[str]) -> dict[str, int]:
    """标题行 -> {标题: 栏位索引}，忽略空标题"""
    header_map: dict[str, int] = {}
    for index, title in enumerate(header_row or []):
        if title and title.strip():
            header_map[title.strip()] = index
    return header_map


def _get_value(row: Sequence[str], header_map: dict[str, int], label: str) -> str:
    index = header_map.get(label)
    if index is None or index >= len(row):
        return ""
    return row[index] or ""


def _parse_rows(
    rows: list[list[str]],
    fields: dict[str, str],
    table: str,
) -> list[tuple[int, dict[str, str]]]:
    """按标题解析数据行，返回 (row_index, {字段: 值})，跳过空行"""
    if not rows:
        log.warning("table_empty", table=table)
        return []
    header_map = build_header_map(rows[0])
    missing = [label for label in fields if label not in header_map]
    if missing:
        log.warning("table_header_missing", table=table, missing=missing)

    parsed = []
    for offset, row in enumerate(rows[1:]):
        if not row:
            continue
        values = {field: _get_value(row, header_map, label) for label, field in fields.items()}
        parsed.append((offset + 2, values))
    return parsed


def _time_key(value: str) -> datetime:
    try:
        ts = datetime.fromisoformat(value)
    except ValueError:
        return _EPOCH
    return ts if ts.tzinfo else ts.replace(tzinfo=UTC)


class OpportunitySheetReader:
    """机会案件 Reader"""

    def __init__(
        self,
        table_store: TabularRecordStore,
        table: str,
        system_config: SystemConfigSource | None = None,
        archived_status: str = ARCHIVED_STATUS,
        page_size: int = OPPORTUNITIES_PER_PAGE,
    ) -> None:
        self._table_store = table_store
        self._table = table
        self._system_config = system_config
        self._archived_status = archived_status
        self._page_size = page_size

    async def get_opportunities(self) -> list[Opportunity]:
        """取得所有未封存的机会案件（最后更新时间倒序）

        Returns:
            保证返回列表；读取失败时为空列表
        """
        try:
            rows = await self._table_store.read_table(self._table)
            opportunities = [
                Opportunity(row_index=row_index, **values)
                for row_index, values in _parse_rows(rows, OPPORTUNITY_FIELDS, self._table)
            ]
        except Exception as e:
            log.error("opportunities_read_failed", table=self._table, error=str(e))
            return []

        opportunities = [o for o in opportunities if o.current_status != self._archived_status]
        opportunities.sort(
            key=lambda o: _time_key(o.last_update_time or o.created_time),
            reverse=True,
        )
        return opportunities

    async def search_opportunities(
        self,
        query: str | None = None,
        page: int | None = 1,
        filters: dict[str, str] | None = None,
    ) -> list[Opportunity] | OpportunityPage:
        """搜索并分页

        - query 以 "opp" 开头且与某机会 ID 完全相同（不分大小写）时命中该机会
        - 否则按机会名称或客户公司模糊匹配
        - filters 支持 assignee / type / stage 精确筛选
        - page 为 None 或 <= 0 时返回完整列表，不分页
        """
        opportunities = await self.get_opportunities()

        if query:
            term = query.lower()

            def matches(o: Opportunity) -> bool:
                if term.startswith("opp") and o.opportunity_id.lower() == term:
                    return True
                return term in o.opportunity_name.lower() or term in o.customer_company.lower()

            opportunities = [o for o in opportunities if matches(o)]

        filters = filters or {}
        if assignee := filters.get("assignee"):
            opportunities = [o for o in opportunities if o.assignee == assignee]
        if opportunity_type := filters.get("type"):
            opportunities = [o for o in opportunities if o.opportunity_type == opportunity_type]
        if stage := filters.get("stage"):
            opportunities = [o for o in opportunities if o.current_stage == stage]

        if not page or page <= 0:
            return opportunities

        start = (page - 1) * self._page_size
        total_items = len(opportunities)
        return OpportunityPage(
            data=opportunities[start : start + self._page_size],
            pagination=Pagination(
                current=page,
                total=math.ceil(total_items / self._page_size),
                total_items=total_items,
                has_next=start + self._page_size < total_items,
                has_prev=page > 1,
            ),
        )

    async def get_opportunities_by_stage(self) -> dict[str, StageGroup]:
        """按系统设定中的机会阶段聚合进行中的机会"""
        try:
            opportunities, config = await asyncio.gather(
                self.get_opportunities(),
                self._system_config.get_system_config() if self._system_config else _empty(),
            )
        except Exception as e:
            log.error("opportunities_by_stage_failed", error=str(e))
            return {}

        groups = {
            stage.value: StageGroup(name=stage.note or stage.value)
            for stage in config.get(OPPORTUNITY_STAGE_CATEGORY, [])
        }
        for opportunity in opportunities:
            if opportunity.current_status != OPPORTUNITY_ACTIVE_STATUS:
                continue
            group = groups.get(opportunity.current_stage)
            if group is not None:
                group.opportunities.append(opportunity)
                group.count += 1
        return groups


async def _empty() -> dict:
    return {}


class CompanySheetReader:
    """公司 Reader"""

    def __init__(self, table_store: TabularRecordStore, table: str) -> None:
        self._table_store = table_store
        self._table = table

    async def get_company_list(self) -> list[Company]:
        try:
            rows = await self._table_store.read_table(self._table)
            return [
                Company(row_index=row_index, **values)
                for row_index, values in _parse_rows(rows, COMPANY_FIELDS, self._table)
            ]
        except Exception as e:
            log.error("companies_read_failed", table=self._table, error=str(e))
            return []


class SystemConfigSheetReader:
    """系统设定 Reader -- 按类别聚合设定项，类别内按排序值排列"""

    def __init__(self, table_store: TabularRecordStore, table: str) -> None:
        self._table_store = table_store
        self._table = table

    async def get_system_config(self) -> dict[str, list[ConfigItem]]:
        try:
            rows = await self._table_store.read_table(self._table)
            parsed = _parse_rows(rows, SYSTEM_CONFIG_FIELDS, self._table)
        except Exception as e:
            log.error("system_config_read_failed", table=self._table, error=str(e))
            return {}

        config: dict[str, list[ConfigItem]] = defaultdict(list)
        for _, values in parsed:
            if not values["category"] or not values["value"]:
                continue
            try:
                order = int(values["order"])
            except ValueError:
                order = 0
            config[values["category"]].append(
                ConfigItem(value=values["value"], note=values["note"], order=order)
            )
        for items in config.values():
            items.sort(key=lambda item: item.order)
        return dict(config)


def related_table_headers(config) -> dict[str, list[str]]:
    """关联数据工作表的默认标题，供 ensure_headers 初始化使用"""
    return {
        config.opportunities: list(OPPORTUNITY_FIELDS),
        config.companies: list(COMPANY_FIELDS),
        config.system_config: list(SYSTEM_CONFIG_FIELDS),
    }
