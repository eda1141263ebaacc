"""事件紀录路由

GET    /api/events: 事件列表（已关联机会/公司名称）
GET    /api/events/{event_id}: 单条事件
POST   /api/events: 建立事件
PUT    /api/events/{id_or_row}: 更新事件（event_id 或 rowIndex；类型变更时搬移）
DELETE /api/events/{row_index}?event_type=: 删除事件
GET    /api/event-types: 系统设定中的事件类型
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Header, Query
from sheetcrm.core.exceptions import (
    EventLogError,
    InvalidArgumentError,
    MigrationFailureError,
    RecordNotFoundError,
    StoreFailureError,
)
from starlette.responses import JSONResponse

from ..deps import get_event_log_service
from ..services.event_log_service import EventLogService, UserContext, resolve_modifier

log = structlog.get_logger()

router = APIRouter()


def _error_response(exc: EventLogError) -> JSONResponse:
    """领域异常 -> HTTP 错误响应"""
    error: dict[str, Any] = {"message": str(exc)}
    if isinstance(exc, InvalidArgumentError):
        status_code, error["code"] = 400, "INVALID_ARGUMENT"
    elif isinstance(exc, RecordNotFoundError):
        status_code, error["code"] = 404, "EVENT_NOT_FOUND"
    elif isinstance(exc, MigrationFailureError):
        status_code, error["code"] = 500, "MIGRATION_FAILED"
        error["phase"] = exc.phase
        error["event_id"] = exc.event_id
        error["data_lost"] = exc.data_lost
    elif isinstance(exc, StoreFailureError):
        status_code, error["code"] = 502, "STORE_FAILURE"
    else:
        status_code, error["code"] = 500, "EVENT_LOG_ERROR"
    return JSONResponse(status_code=status_code, content={"error": error})


def _user_from_headers(
    display_name: str | None = Header(default=None, alias="X-User-Display-Name"),
    username: str | None = Header(default=None, alias="X-User-Name"),
) -> UserContext:
    return UserContext(display_name=display_name, username=username)


@router.get("/api/events")
async def list_events(
    include_archived: bool = Query(default=False, description="是否包含封存记录"),
    service: EventLogService = Depends(get_event_log_service),
):
    """事件列表，最后修改时间倒序"""
    events = await service.get_all_events(include_archived=include_archived)
    return {"events": [e.model_dump(mode="json") for e in events]}


@router.get("/api/event-types")
async def list_event_types(service: EventLogService = Depends(get_event_log_service)):
    types = await service.get_event_types()
    return {"event_types": [t.model_dump() for t in types]}


@router.get("/api/events/{event_id}")
async def get_event(
    event_id: str,
    service: EventLogService = Depends(get_event_log_service),
):
    event = await service.get_event_by_id(event_id)
    if event is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": {
                    "code": "EVENT_NOT_FOUND",
                    "message": f"Event with id {event_id} does not exist",
                }
            },
        )
    return event.model_dump(mode="json")


@router.post("/api/events", status_code=201)
async def create_event(
    body: dict[str, Any] = Body(...),
    user: UserContext = Depends(_user_from_headers),
    service: EventLogService = Depends(get_event_log_service),
):
    try:
        result = await service.create_event(body, user)
    except EventLogError as e:
        return _error_response(e)
    return JSONResponse(status_code=201, content=result.model_dump())


@router.put("/api/events/{id_or_row}")
async def update_event(
    id_or_row: str,
    body: dict[str, Any] = Body(...),
    user: UserContext = Depends(_user_from_headers),
    service: EventLogService = Depends(get_event_log_service),
):
    try:
        result = await service.update_event(id_or_row, body, resolve_modifier(user))
    except EventLogError as e:
        return _error_response(e)
    return result.model_dump()


@router.delete("/api/events/{row_index}")
async def delete_event(
    row_index: str,
    event_type: str | None = Query(default=None, description="事件类型，决定所在工作表"),
    service: EventLogService = Depends(get_event_log_service),
):
    try:
        result = await service.delete_event(row_index, event_type)
    except EventLogError as e:
        return _error_response(e)
    return result.model_dump()
