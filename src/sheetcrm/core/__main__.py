"""CLI 入口模块 -- python -m sheetcrm.core <command>

支持的命令：
  init-tables  为缺少标题行的工作表写入标题
  list-events  列出事件紀录（加 --all 包含封存记录）
"""

import asyncio
import sys

from .config import get_db_path, load_sheet_config


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m sheetcrm.core <command>")
        print("命令:")
        print("  init-tables  为缺少标题行的工作表写入标题")
        print("  list-events  列出事件紀录（--all 包含封存记录）")
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-tables":
        asyncio.run(init_tables())
    elif command == "list-events":
        asyncio.run(list_events(include_archived="--all" in sys.argv[2:]))
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-tables, list-events")
        sys.exit(1)


async def init_tables() -> None:
    """初始化全部工作表标题行"""
    from .readers import related_table_headers
    from .store import create_store_group, ensure_headers

    db_path = get_db_path()
    config = load_sheet_config()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path, config)
    try:
        written = await ensure_headers(
            store_group.table_store,
            store_group.registry,
            extra_tables=related_table_headers(config),
        )
        if written:
            print(f"已写入标题行: {', '.join(written)}")
        else:
            print("所有工作表标题行均已存在")
    finally:
        await store_group.close()


async def list_events(include_archived: bool = False) -> None:
    """按时间倒序打印事件紀录"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path(), load_sheet_config())
    try:
        records = await store_group.event_log_repository.list_events(
            include_archived=include_archived
        )
        for record in records:
            print(
                f"{record.event_id}\t{record.event_type.value}\t"
                f"{record.sort_time}\t{record.event_name}"
            )
        print(f"共 {len(records)} 条")
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
