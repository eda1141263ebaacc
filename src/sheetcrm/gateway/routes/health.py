"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含表格存储连通性与事件工作表标题行。
"""

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查

    检查项：
    1. backend: 表格存储连通性
    2. event_tables: 各事件工作表标题行是否与 schema 一致
    """
    checks = {}
    all_ok = True

    store_group = getattr(request.app.state, "store_group", None)

    # 1. backend 连通性
    try:
        ping = getattr(store_group.backend, "ping", None)
        if ping is not None and not await ping():
            raise RuntimeError("backend ping returned no row")
        checks["backend"] = "ok"
    except Exception as e:
        checks["backend"] = f"error: {str(e)}"
        all_ok = False

    # 2. 事件工作表标题行
    try:
        mismatched = []
        for schema in store_group.registry.all_schemas():
            header = await store_group.table_store.read_header(schema.table_name, schema.width)
            if header != schema.labels:
                mismatched.append(schema.table_name)
        if mismatched:
            checks["event_tables"] = f"header mismatch: {', '.join(mismatched)}"
            all_ok = False
        else:
            checks["event_tables"] = "ok"
    except Exception as e:
        log.warning("ready_check_error", error=str(e))
        checks["event_tables"] = f"error: {str(e)}"
        all_ok = False

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
