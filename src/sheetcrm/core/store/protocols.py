"""Store Protocol 接口定义

定义表格 backend、快取、关联数据来源与日历同步的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from ..models.related import Company, ConfigItem, Opportunity


class TableBackend(Protocol):
    """行导向表格存储接口（试算表 values API 的最小子集）

    范围采用 A1 表示法，例如 ``EventLogs_IOT!A5:X5``。
    所有调用直接提交，无本地缓冲。
    """

    async def get_values(self, range_: str) -> list[list[str]]:
        """读取范围内的值

        行尾空白储存格与范围外的行不返回（与试算表 API 一致）。
        """
        ...

    async def append_values(self, range_: str, rows: Sequence[Sequence[Any]]) -> str:
        """在表格第一个空行之后追加，返回实际写入的范围"""
        ...

    async def update_values(self, range_: str, rows: Sequence[Sequence[Any]]) -> None:
        """覆写范围内的值"""
        ...

    async def delete_rows(self, table: str, row_index: int, count: int = 1) -> None:
        """删除物理行并向上压缩（1-based 行号）"""
        ...


class RecordCache(Protocol):
    """读取端快取接口

    首次读取时惰性填充，同一逻辑集合发生任何写入时清除。
    """

    async def get_or_populate(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """命中直接返回，否则调用 loader 填充"""
        ...

    def invalidate(self, key: str | None = None) -> None:
        """失效指定 key，None 表示清空全部"""
        ...


class OpportunitySource(Protocol):
    """机会案件来源"""

    async def get_opportunities(self) -> list[Opportunity]:
        ...


class CompanySource(Protocol):
    """公司来源"""

    async def get_company_list(self) -> list[Company]:
        ...


class SystemConfigSource(Protocol):
    """系统设定来源（事件类型、机会阶段等）"""

    async def get_system_config(self) -> dict[str, list[ConfigItem]]:
        ...
