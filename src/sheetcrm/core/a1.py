"""A1 范围表示法工具

范围格式: ``Table!A<start>:<lastColumn><end>``，栏位字母从第一栏依序编号
（A..Z, AA..AZ, ...）。行号省略时表示整栏（如 ``Table!A:Z``）。
"""

import re
from dataclasses import dataclass

_PLAIN_TABLE_NAME = re.compile(r"^[A-Za-z0-9_]+$")
_CELL_REF = re.compile(r"^([A-Za-z]+)(\d*)$")


@dataclass(frozen=True)
class A1Range:
    """解析后的 A1 范围（行号为 None 表示不限）"""

    table: str
    start_column: int
    start_row: int | None
    end_column: int
    end_row: int | None


def column_letter(number: int) -> str:
    """1-based 栏位编号转字母：1 -> A, 26 -> Z, 27 -> AA"""
    if number < 1:
        raise ValueError(f"column number must be >= 1, got {number}")
    letters = ""
    while number > 0:
        number, remainder = divmod(number - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def column_number(letters: str) -> int:
    """栏位字母转 1-based 编号"""
    number = 0
    for char in letters.upper():
        if not "A" <= char <= "Z":
            raise ValueError(f"invalid column letters: {letters!r}")
        number = number * 26 + (ord(char) - 64)
    return number


def quote_table_name(table: str) -> str:
    """非纯 ASCII 字母数字的表名需加单引号（内部单引号转义为两个）"""
    if _PLAIN_TABLE_NAME.match(table):
        return table
    return "'" + table.replace("'", "''") + "'"


def build_range(table: str, start_row: int | None, end_row: int | None, width: int) -> str:
    """按 schema 宽度组装范围，例如 build_range("IOT", 5, 5, 24) -> "IOT!A5:X5" """
    last = column_letter(width)
    start = f"A{start_row}" if start_row is not None else "A"
    end = f"{last}{end_row}" if end_row is not None else last
    return f"{quote_table_name(table)}!{start}:{end}"


def parse_range(range_: str) -> A1Range:
    """解析 A1 范围字符串

    Raises:
        ValueError: 格式不合法
    """
    if "!" not in range_:
        raise ValueError(f"range without table name: {range_!r}")
    table_part, _, cells = range_.rpartition("!")
    if table_part.startswith("'") and table_part.endswith("'") and len(table_part) >= 2:
        table = table_part[1:-1].replace("''", "'")
    else:
        table = table_part

    start_ref, _, end_ref = cells.partition(":")
    end_ref = end_ref or start_ref

    start = _CELL_REF.match(start_ref)
    end = _CELL_REF.match(end_ref)
    if not start or not end:
        raise ValueError(f"invalid cell reference in range: {range_!r}")

    return A1Range(
        table=table,
        start_column=column_number(start.group(1)),
        start_row=int(start.group(2)) if start.group(2) else None,
        end_column=column_number(end.group(1)),
        end_row=int(end.group(2)) if end.group(2) else None,
    )
