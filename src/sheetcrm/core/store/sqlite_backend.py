"""TableBackend SQLite 实现

以 SQLite 模拟试算表：每个物理行一条记录，(table_name, row_index) 为主键，
储存格以 JSON 数组保存。删除行后，下方行的 row_index 依次上移。
每次调用独立提交，不做跨调用事务。
"""

import json
from collections.abc import Sequence
from typing import Any

import aiosqlite

from ..a1 import build_range, parse_range

_SHEET_ROWS_DDL = """
CREATE TABLE IF NOT EXISTS sheet_rows (
    table_name  TEXT NOT NULL,
    row_index   INTEGER NOT NULL,
    cells       TEXT NOT NULL DEFAULT '[]',
    PRIMARY KEY (table_name, row_index)
);
"""


async def init_backend_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")
    await conn.execute(_SHEET_ROWS_DDL)
    await conn.commit()


def _encode(cells: Sequence[Any]) -> str:
    values = ["" if v is None else str(v) for v in cells]
    while values and values[-1] == "":
        values.pop()
    return json.dumps(values, ensure_ascii=False)


class SqliteTableBackend:
    """TableBackend 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def _content_end(self, table: str) -> int:
        """最后一个非空行的行号，空表为 0"""
        cursor = await self._conn.execute(
            "SELECT COALESCE(MAX(row_index), 0) FROM sheet_rows "
            "WHERE table_name = ? AND cells != '[]'",
            (table,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def _read_cells(self, table: str, row_index: int) -> list[str]:
        cursor = await self._conn.execute(
            "SELECT cells FROM sheet_rows WHERE table_name = ? AND row_index = ?",
            (table, row_index),
        )
        row = await cursor.fetchone()
        return json.loads(row[0]) if row else []

    async def get_values(self, range_: str) -> list[list[str]]:
        parsed = parse_range(range_)
        start_row = parsed.start_row or 1
        content_end = await self._content_end(parsed.table)
        end_row = min(parsed.end_row or content_end, content_end)
        if end_row < start_row:
            return []

        cursor = await self._conn.execute(
            """
            SELECT row_index, cells FROM sheet_rows
            WHERE table_name = ? AND row_index BETWEEN ? AND ?
            ORDER BY row_index ASC
            """,
            (parsed.table, start_row, end_row),
        )
        stored = {row[0]: json.loads(row[1]) for row in await cursor.fetchall()}

        values: list[list[str]] = []
        for row_index in range(start_row, end_row + 1):
            cells = stored.get(row_index, [])[parsed.start_column - 1 : parsed.end_column]
            while cells and cells[-1] == "":
                cells.pop()
            values.append(cells)
        return values

    async def append_values(self, range_: str, rows: Sequence[Sequence[Any]]) -> str:
        parsed = parse_range(range_)
        start_row = await self._content_end(parsed.table) + 1
        width = max((len(r) for r in rows), default=1)
        try:
            # 清掉内容边界之后残留的空行
            await self._conn.execute(
                "DELETE FROM sheet_rows WHERE table_name = ? AND row_index >= ?",
                (parsed.table, start_row),
            )
            for offset, row in enumerate(rows):
                await self._conn.execute(
                    "INSERT INTO sheet_rows (table_name, row_index, cells) VALUES (?, ?, ?)",
                    (parsed.table, start_row + offset, _encode(row)),
                )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise
        return build_range(parsed.table, start_row, start_row + len(rows) - 1, max(width, 1))

    async def update_values(self, range_: str, rows: Sequence[Sequence[Any]]) -> None:
        parsed = parse_range(range_)
        start_row = parsed.start_row or 1
        try:
            for offset, row in enumerate(rows):
                row_index = start_row + offset
                current = await self._read_cells(parsed.table, row_index)
                needed = parsed.start_column - 1 + len(row)
                if len(current) < needed:
                    current.extend([""] * (needed - len(current)))
                for col_offset, value in enumerate(row):
                    cell = "" if value is None else str(value)
                    current[parsed.start_column - 1 + col_offset] = cell
                await self._conn.execute(
                    """
                    INSERT INTO sheet_rows (table_name, row_index, cells) VALUES (?, ?, ?)
                    ON CONFLICT (table_name, row_index) DO UPDATE SET cells = excluded.cells
                    """,
                    (parsed.table, row_index, _encode(current)),
                )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

    async def delete_rows(self, table: str, row_index: int, count: int = 1) -> None:
        last = row_index + count - 1
        try:
            await self._conn.execute(
                "DELETE FROM sheet_rows WHERE table_name = ? AND row_index BETWEEN ? AND ?",
                (table, row_index, last),
            )
            # 先翻成负数再翻回，避免上移过程中主键冲突
            await self._conn.execute(
                """
                UPDATE sheet_rows SET row_index = -(row_index - ?)
                WHERE table_name = ? AND row_index > ?
                """,
                (count, table, last),
            )
            await self._conn.execute(
                "UPDATE sheet_rows SET row_index = -row_index "
                "WHERE table_name = ? AND row_index < 0",
                (table,),
            )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

    async def ping(self) -> bool:
        """连通性检查"""
        cursor = await self._conn.execute("SELECT 1")
        row = await cursor.fetchone()
        return row is not None
