"""TabularRecordStore -- 以物理行号读写任意工作表

只知道表名、行号与栏位宽度，不理解语义 key。
所有调用直接提交到 backend；backend 抛出的异常统一包装为 StoreFailureError。
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import structlog

from ..a1 import build_range, parse_range
from ..exceptions import (
    EventLogError,
    InvalidArgumentError,
    RecordNotFoundError,
    StoreFailureError,
)
from .protocols import TableBackend

log = structlog.get_logger()

# 试算表有效栏位上限，整表读取时使用
MAX_SHEET_WIDTH = 702  # ZZ

T = TypeVar("T")


def pad_row(row: Sequence[Any], width: int) -> list[str]:
    """将行补齐到 width（缺少的行尾储存格补空字符串）"""
    cells = ["" if v is None else str(v) for v in row[:width]]
    if len(cells) < width:
        cells.extend([""] * (width - len(cells)))
    return cells


class TabularRecordStore:
    """基于 TableBackend 的行级读写"""

    def __init__(self, backend: TableBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> TableBackend:
        return self._backend

    async def _call(self, table: str, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        except EventLogError:
            raise
        except Exception as e:
            log.error(
                "table_call_failed",
                table=table,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreFailureError(table=table, original_error=e) from e

    async def append(self, table: str, row: Sequence[Any]) -> int:
        """追加一行，返回新行的物理行号"""
        range_ = build_range(table, None, None, max(len(row), 1))
        updated_range = await self._call(
            table, lambda: self._backend.append_values(range_, [list(row)])
        )
        row_index = parse_range(updated_range).start_row
        if row_index is None:
            raise StoreFailureError(
                table=table,
                original_error=ValueError(f"append returned range without row: {updated_range}"),
            )
        return row_index

    async def read_row(self, table: str, row_index: int, width: int) -> list[str]:
        """读取一行并补齐到 width

        Raises:
            RecordNotFoundError: row_index <= 1（标题行）或该行不存在/为空
        """
        if row_index <= 1:
            raise RecordNotFoundError(
                f"无效的数据行: {table} 第 {row_index} 行",
                table=table,
                row_index=row_index,
            )
        range_ = build_range(table, row_index, row_index, width)
        values = await self._call(table, lambda: self._backend.get_values(range_))
        current = values[0] if values else []
        if not current:
            raise RecordNotFoundError(
                f"找不到资料: {table} 第 {row_index} 行",
                table=table,
                row_index=row_index,
            )
        return pad_row(current, width)

    async def write_row(self, table: str, row_index: int, row: Sequence[Any]) -> None:
        """原位覆写一行（不做 schema 校验，栏位顺序由调用方负责）"""
        range_ = build_range(table, row_index, row_index, max(len(row), 1))
        await self._call(table, lambda: self._backend.update_values(range_, [list(row)]))

    async def delete_row(self, table: str, row_index: int) -> None:
        """删除物理行；行不存在时不报错

        Raises:
            InvalidArgumentError: row_index <= 1（不可删除标题行）
        """
        if row_index <= 1:
            raise InvalidArgumentError(f"无效的 rowIndex: {row_index}")
        await self._call(table, lambda: self._backend.delete_rows(table, row_index))

    async def read_header(self, table: str, width: int = MAX_SHEET_WIDTH) -> list[str]:
        """读取标题行（不存在时返回空列表）"""
        range_ = build_range(table, 1, 1, width)
        values = await self._call(table, lambda: self._backend.get_values(range_))
        return list(values[0]) if values else []

    async def read_all(self, table: str, width: int) -> list[tuple[int, list[str]]]:
        """读取标题行之后的所有非空行，返回 (row_index, 补齐后的行)"""
        range_ = build_range(table, 2, None, width)
        values = await self._call(table, lambda: self._backend.get_values(range_))
        return [
            (offset + 2, pad_row(row, width))
            for offset, row in enumerate(values)
            if row
        ]

    async def read_table(self, table: str) -> list[list[str]]:
        """读取整张表（含标题行），供按标题解析的 reader 使用"""
        range_ = build_range(table, None, None, MAX_SHEET_WIDTH)
        return await self._call(table, lambda: self._backend.get_values(range_))
