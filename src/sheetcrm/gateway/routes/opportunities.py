"""机会案件路由（只读）

GET /api/opportunities: 搜索机会，支持分页与 assignee / type / stage 筛选
GET /api/opportunities/by-stage: 进行中的机会按阶段聚合
"""

from fastapi import APIRouter, Depends, Query
from sheetcrm.core.readers import OpportunitySheetReader

from ..deps import get_opportunity_reader

router = APIRouter()


@router.get("/api/opportunities")
async def search_opportunities(
    q: str | None = Query(default=None, description="机会 ID、名称或客户公司"),
    page: int = Query(default=1, description="页码，<= 0 时返回完整列表"),
    assignee: str | None = Query(default=None),
    type_: str | None = Query(default=None, alias="type"),
    stage: str | None = Query(default=None),
    reader: OpportunitySheetReader = Depends(get_opportunity_reader),
):
    filters = {
        key: value
        for key, value in (("assignee", assignee), ("type", type_), ("stage", stage))
        if value
    }
    result = await reader.search_opportunities(q, page=page, filters=filters)
    if isinstance(result, list):
        return {"data": [o.model_dump() for o in result]}
    return result.model_dump()


@router.get("/api/opportunities/by-stage")
async def opportunities_by_stage(
    reader: OpportunitySheetReader = Depends(get_opportunity_reader),
):
    """阶段名称 -> 该阶段的机会与数量"""
    groups = await reader.get_opportunities_by_stage()
    return {"stages": {stage: group.model_dump() for stage, group in groups.items()}}
