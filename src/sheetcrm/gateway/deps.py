"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from sheetcrm.core.readers import OpportunitySheetReader
from sheetcrm.core.store import StoreGroup

from .services.event_log_service import EventLogService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_event_log_service(request: Request) -> EventLogService:
    """从 app.state 获取 EventLogService 实例"""
    return request.app.state.event_log_service


def get_opportunity_reader(request: Request) -> OpportunitySheetReader:
    """从 app.state 获取机会案件 reader"""
    return request.app.state.opportunity_reader
