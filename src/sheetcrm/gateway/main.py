"""FastAPI 应用主文件

app 创建 + lifespan 管理：表格存储初始化/关闭 + reader、服务组装 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sheetcrm.core.config import get_db_path, load_sheet_config
from sheetcrm.core.migration import EventTypeMigrator
from sheetcrm.core.readers import (
    CompanySheetReader,
    OpportunitySheetReader,
    SystemConfigSheetReader,
    related_table_headers,
)
from sheetcrm.core.store import create_store_group, ensure_headers

from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import events, health, opportunities
from .services.calendar import HttpCalendarClient
from .services.event_log_service import EventLogService

log = structlog.get_logger()


def build_opportunity_reader(store_group, config) -> OpportunitySheetReader:
    """机会案件 reader（阶段聚合依赖系统设定 reader）"""
    table_store = store_group.table_store
    return OpportunitySheetReader(
        table_store,
        config.opportunities,
        system_config=SystemConfigSheetReader(table_store, config.system_config),
    )


def build_event_log_service(store_group, config) -> EventLogService:
    """基于 StoreGroup 组装 EventLogService"""
    table_store = store_group.table_store
    system_config = SystemConfigSheetReader(table_store, config.system_config)
    calendar = None
    if config.calendar_webhook_url:
        calendar = HttpCalendarClient(
            webhook_url=config.calendar_webhook_url,
            timeout_s=config.calendar_timeout_s,
        )

    return EventLogService(
        repository=store_group.event_log_repository,
        migrator=EventTypeMigrator(store_group.event_log_repository),
        opportunities=OpportunitySheetReader(
            table_store,
            config.opportunities,
            system_config=system_config,
        ),
        companies=CompanySheetReader(table_store, config.companies),
        system_config=system_config,
        calendar=calendar,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化存储与服务，关闭时清理连接"""
    config = load_sheet_config()
    store_group = await create_store_group(get_db_path(), config)
    await ensure_headers(
        store_group.table_store,
        store_group.registry,
        extra_tables=related_table_headers(config),
    )
    app.state.store_group = store_group
    app.state.sheet_config = config
    app.state.event_log_service = build_event_log_service(store_group, config)
    app.state.opportunity_reader = build_opportunity_reader(store_group, config)

    log.info(
        "event_log_service_initialized",
        calendar_sync=bool(config.calendar_webhook_url),
        cache_ttl_s=config.cache_ttl_s,
    )

    yield

    if getattr(app.state, "store_group", None):
        await app.state.store_group.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="sheetcrm Gateway",
        version="0.1.0",
        description="事件紀录存储 API",
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)

    setup_logging()

    app.include_router(events.router, tags=["events"])
    app.include_router(opportunities.router, tags=["opportunities"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
