"""TableBackend 内存实现

行为与试算表 values API 一致：读取时去除行尾空白、忽略内容边界之外的行；
追加写在最后一个非空行之后；删除行后下方行上移。
"""

from collections.abc import Sequence
from typing import Any

from ..a1 import build_range, parse_range


def _to_cell(value: Any) -> str:
    return "" if value is None else str(value)


def _trim(row: list[str]) -> list[str]:
    end = len(row)
    while end > 0 and row[end - 1] == "":
        end -= 1
    return row[:end]


class InMemoryTableBackend:
    """TableBackend 的内存实现（测试与本地开发使用）"""

    def __init__(self, tables: dict[str, list[list[Any]]] | None = None) -> None:
        self._tables: dict[str, list[list[str]]] = {}
        for name, rows in (tables or {}).items():
            self._tables[name] = [[_to_cell(v) for v in row] for row in rows]

    def rows(self, table: str) -> list[list[str]]:
        """返回表格原始内容（含标题行）的副本"""
        return [list(row) for row in self._tables.get(table, [])]

    def _content_end(self, table: str) -> int:
        """最后一个非空行的 1-based 行号，空表为 0"""
        rows = self._tables.get(table, [])
        for index in range(len(rows), 0, -1):
            if _trim(rows[index - 1]):
                return index
        return 0

    async def get_values(self, range_: str) -> list[list[str]]:
        parsed = parse_range(range_)
        rows = self._tables.get(parsed.table, [])
        start_row = parsed.start_row or 1
        end_row = parsed.end_row or len(rows)
        end_row = min(end_row, self._content_end(parsed.table))

        values: list[list[str]] = []
        for row_index in range(start_row, end_row + 1):
            row = rows[row_index - 1]
            values.append(_trim(row[parsed.start_column - 1 : parsed.end_column]))
        return values

    async def append_values(self, range_: str, rows: Sequence[Sequence[Any]]) -> str:
        parsed = parse_range(range_)
        table = self._tables.setdefault(parsed.table, [])
        start_row = self._content_end(parsed.table) + 1
        del table[start_row - 1 :]
        width = 0
        for row in rows:
            cells = [_to_cell(v) for v in row]
            width = max(width, len(cells))
            table.append(cells)
        end_row = start_row + len(rows) - 1
        return build_range(parsed.table, start_row, end_row, max(width, 1))

    async def update_values(self, range_: str, rows: Sequence[Sequence[Any]]) -> None:
        parsed = parse_range(range_)
        table = self._tables.setdefault(parsed.table, [])
        start_row = parsed.start_row or 1
        for offset, row in enumerate(rows):
            row_index = start_row + offset
            while len(table) < row_index:
                table.append([])
            current = table[row_index - 1]
            needed = parsed.start_column - 1 + len(row)
            if len(current) < needed:
                current.extend([""] * (needed - len(current)))
            for col_offset, value in enumerate(row):
                current[parsed.start_column - 1 + col_offset] = _to_cell(value)

    async def delete_rows(self, table: str, row_index: int, count: int = 1) -> None:
        rows = self._tables.get(table)
        if rows is None or row_index > len(rows):
            return
        del rows[row_index - 1 : row_index - 1 + count]
