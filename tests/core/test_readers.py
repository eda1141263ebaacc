"""关联数据 Reader 测试"""

from unittest.mock import AsyncMock

import pytest
from sheetcrm.core.config import ARCHIVED_STATUS, OPPORTUNITY_ACTIVE_STATUS
from sheetcrm.core.models import ConfigItem, OpportunityPage
from sheetcrm.core.readers import (
    CompanySheetReader,
    OpportunitySheetReader,
    SystemConfigSheetReader,
    build_header_map,
)
from sheetcrm.core.store import InMemoryTableBackend, TabularRecordStore

# 标题顺序刻意与字段定义不同
OPP_HEADER = ["機會名稱", "機會ID", "客戶公司", "負責業務", "機會種類", "目前階段", "目前狀態",
              "建立時間", "最後更新時間"]


def _opp(opp_id, name, company, stage="S1", status=OPPORTUNITY_ACTIVE_STATUS, updated="",
         assignee="Amy", kind="新案"):
    return [name, opp_id, company, assignee, kind, stage, status, "2026-01-01T00:00:00Z", updated]


@pytest.fixture
def sheet_store() -> TabularRecordStore:
    backend = InMemoryTableBackend(
        {
            "Opportunities": [
                OPP_HEADER,
                _opp("OPP001", "產線升級", "台積", updated="2026-01-05T00:00:00Z"),
                _opp("OPP002", "設備汰換", "鴻海", stage="S2", updated="2026-01-07T00:00:00Z"),
                _opp("OPP003", "舊案", "台積", status=ARCHIVED_STATUS),
                _opp("OPP004", "暫停案", "聯電", status="暫停", updated="2026-01-06T00:00:00Z",
                     assignee="Bob", kind="續約"),
            ],
            "Companies": [
                ["公司ID", "公司名稱", "縣市"],
                ["C001", "台積", "新竹市"],
                [],
                ["C002", "鴻海", "新北市"],
            ],
            "SystemConfig": [
                ["設定類別", "設定值", "備註", "排序"],
                ["機會階段", "S2", "提案", "2"],
                ["機會階段", "S1", "初談", "1"],
                ["事件類型", "general", "一般", "1"],
                ["事件類型", "iot", "IoT", "x"],
                ["", "孤兒", "", ""],
            ],
        }
    )
    return TabularRecordStore(backend)


@pytest.fixture
def system_config(sheet_store) -> SystemConfigSheetReader:
    return SystemConfigSheetReader(sheet_store, "SystemConfig")


@pytest.fixture
def opportunities(sheet_store, system_config) -> OpportunitySheetReader:
    return OpportunitySheetReader(sheet_store, "Opportunities", system_config=system_config)


class TestHeaderMap:
    def test_ignores_blank_titles(self):
        assert build_header_map(["A", "", " B "]) == {"A": 0, "B": 2}


class TestOpportunitySheetReader:
    async def test_excludes_archived_and_sorts(self, opportunities):
        result = await opportunities.get_opportunities()
        assert [o.opportunity_id for o in result] == ["OPP002", "OPP004", "OPP001"]
        assert result[0].opportunity_name == "設備汰換"
        assert result[0].row_index == 3

    async def test_read_failure_returns_empty(self):
        table_store = AsyncMock()
        table_store.read_table.side_effect = RuntimeError("down")
        reader = OpportunitySheetReader(table_store, "Opportunities")
        assert await reader.get_opportunities() == []

    async def test_search_by_name_or_company(self, opportunities):
        result = await opportunities.search_opportunities("台積", page=None)
        assert [o.opportunity_id for o in result] == ["OPP001"]

    async def test_search_exact_id(self, opportunities):
        result = await opportunities.search_opportunities("opp002", page=0)
        assert [o.opportunity_id for o in result] == ["OPP002"]

    async def test_filters(self, opportunities):
        result = await opportunities.search_opportunities(
            None, page=None, filters={"assignee": "Bob", "type": "續約"}
        )
        assert [o.opportunity_id for o in result] == ["OPP004"]

    async def test_pagination(self, sheet_store):
        reader = OpportunitySheetReader(sheet_store, "Opportunities", page_size=2)
        page = await reader.search_opportunities(page=2)
        assert isinstance(page, OpportunityPage)
        assert [o.opportunity_id for o in page.data] == ["OPP001"]
        assert page.pagination.total == 2
        assert page.pagination.total_items == 3
        assert page.pagination.has_prev is True
        assert page.pagination.has_next is False

    async def test_by_stage_counts_active_only(self, opportunities):
        groups = await opportunities.get_opportunities_by_stage()
        assert list(groups) == ["S1", "S2"]
        assert groups["S1"].name == "初談"
        assert groups["S1"].count == 1
        assert groups["S2"].count == 1
        assert groups["S2"].opportunities[0].opportunity_id == "OPP002"


class TestCompanySheetReader:
    async def test_skips_blank_rows(self, sheet_store):
        companies = await CompanySheetReader(sheet_store, "Companies").get_company_list()
        assert [(c.company_id, c.company_name, c.county) for c in companies] == [
            ("C001", "台積", "新竹市"),
            ("C002", "鴻海", "新北市"),
        ]
        assert companies[1].row_index == 4

    async def test_missing_table_is_empty(self, sheet_store):
        assert await CompanySheetReader(sheet_store, "Nope").get_company_list() == []


class TestSystemConfigSheetReader:
    async def test_grouped_and_ordered(self, system_config):
        config = await system_config.get_system_config()
        assert [i.value for i in config["機會階段"]] == ["S1", "S2"]
        assert config["事件類型"][0] == ConfigItem(value="iot", note="IoT", order=0)
        assert "" not in config

    async def test_read_failure_returns_empty(self):
        table_store = AsyncMock()
        table_store.read_table.side_effect = RuntimeError("down")
        assert await SystemConfigSheetReader(table_store, "SystemConfig").get_system_config() == {}
