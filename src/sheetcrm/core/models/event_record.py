"""EventRecord Domain Model

一行事件紀录的领域对象。rowIndex 只是当前所在工作表的物理位置，
事件类型变更（搬移）后会改变，调用方必须按 event_id 重新定位。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import EventLogType


class EventRecord(BaseModel):
    """事件紀录

    共通栏位 + 当前 event_type 的专属栏位；不属于当前类型的专属栏位保持空字符串。
    """

    model_config = ConfigDict(frozen=True)

    event_type: EventLogType = Field(default=EventLogType.GENERAL, description="事件类型")
    row_index: int = Field(default=0, description="所在工作表的 1-based 行号")

    # 共通栏位
    event_id: str = Field(default="", description="事件 ID，建立时产生，永不重新分配")
    event_name: str = Field(default="")
    opportunity_id: str = Field(default="", description="关联机会 ID")
    company_id: str = Field(default="", description="关联公司 ID")
    creator: str = Field(default="")
    created_time: str = Field(default="", description="建立时间（ISO-8601）")
    last_modified_time: str = Field(default="", description="最后修改时间（ISO-8601）")
    our_participants: str = Field(default="")
    client_participants: str = Field(default="")
    visit_place: str = Field(default="")
    event_content: str = Field(default="")
    client_questions: str = Field(default="")
    client_intelligence: str = Field(default="")
    event_notes: str = Field(default="")
    edit_count: str = Field(default="", description="修订版次")
    status: str = Field(default="")

    # IOT 专属
    iot_device_scale: str = Field(default="")
    iot_line_features: str = Field(default="")
    iot_production_status: str = Field(default="")
    iot_iot_status: str = Field(default="")
    iot_pain_points: str = Field(default="")
    iot_pain_point_details: str = Field(default="")
    iot_pain_point_analysis: str = Field(default="")
    iot_system_architecture: str = Field(default="")

    # DT 专属
    dt_processing_type: str = Field(default="")
    dt_industry: str = Field(default="")

    @property
    def sort_time(self) -> str:
        """排序依据：最后修改时间，未修改时退回建立时间"""
        return self.last_modified_time or self.created_time

    def field_values(self) -> dict[str, Any]:
        """仅返回内容栏位（不含 event_type / row_index）"""
        return self.model_dump(exclude={"event_type", "row_index"})


class EventView(EventRecord):
    """返回给调用方的展示对象 -- 带关联名称的独立副本"""

    model_config = ConfigDict(frozen=False)

    id: str = Field(default="", description="event_id 的兼容别名")
    opportunity_name: str | None = Field(default=None, description="关联机会显示名称")
    company_name: str | None = Field(default=None, description="关联公司显示名称")


class PinnedIdentity(BaseModel):
    """搬移时强制沿用的身份信息"""

    event_id: str
    created_time: str
    creator: str = ""
    edit_count: str = "1"


class MutationResult(BaseModel):
    """写入操作结果"""

    success: bool = True
    id: str | None = Field(default=None, description="事件 ID（create / move 时返回）")
    row_index: int | None = Field(default=None, description="写入后的物理行号")
    moved: bool = Field(default=False, description="是否因类型变更而跨表搬移")
