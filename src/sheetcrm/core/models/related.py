"""关联数据模型 -- 机会案件、公司、系统设定

本系统对这些数据只读，仅用于事件的显示名称关联。
"""

from pydantic import BaseModel, Field


class Opportunity(BaseModel):
    """机会案件"""

    row_index: int = Field(default=0)
    opportunity_id: str = Field(default="")
    opportunity_name: str = Field(default="")
    customer_company: str = Field(default="")
    assignee: str = Field(default="")
    opportunity_type: str = Field(default="")
    current_stage: str = Field(default="")
    current_status: str = Field(default="")
    created_time: str = Field(default="")
    last_update_time: str = Field(default="")


class Company(BaseModel):
    """公司"""

    row_index: int = Field(default=0)
    company_id: str = Field(default="")
    company_name: str = Field(default="")
    county: str = Field(default="")


class ConfigItem(BaseModel):
    """系统设定项（事件类型、机会阶段等枚举值）"""

    value: str
    note: str = Field(default="", description="显示名称或说明")
    order: int = Field(default=0, description="排序")


class Pagination(BaseModel):
    """分页信息"""

    current: int
    total: int
    total_items: int
    has_next: bool
    has_prev: bool


class OpportunityPage(BaseModel):
    """分页后的机会搜索结果"""

    data: list[Opportunity]
    pagination: Pagination


class StageGroup(BaseModel):
    """按阶段聚合的机会"""

    name: str
    opportunities: list[Opportunity] = Field(default_factory=list)
    count: int = 0
