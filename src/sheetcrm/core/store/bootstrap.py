"""工作表初始化 -- 为缺少标题行的事件工作表写入标题

幂等：标题行已存在的工作表不会被覆写。
"""

from collections.abc import Mapping, Sequence

import structlog

from ..schema import SchemaRegistry
from .table_store import TabularRecordStore

log = structlog.get_logger()


async def ensure_headers(
    table_store: TabularRecordStore,
    registry: SchemaRegistry,
    extra_tables: Mapping[str, Sequence[str]] | None = None,
) -> list[str]:
    """写入缺少的标题行

    Args:
        table_store: 表格存储
        registry: 事件 schema 注册表
        extra_tables: 其他需要初始化的工作表 -> 标题列表

    Returns:
        本次写入了标题行的工作表名称
    """
    targets: dict[str, list[str]] = {
        schema.table_name: schema.labels for schema in registry.all_schemas()
    }
    for table, labels in (extra_tables or {}).items():
        targets[table] = list(labels)

    written: list[str] = []
    for table, labels in targets.items():
        header = await table_store.read_header(table)
        if header:
            continue
        await table_store.write_row(table, 1, labels)
        written.append(table)

    if written:
        log.info("table_headers_written", tables=written)
    return written
