"""枚举定义

EventLogType 决定事件所在的工作表与字段 schema。
"""

from enum import StrEnum


class EventLogType(StrEnum):
    """事件类型（discriminant）"""

    GENERAL = "general"
    IOT = "iot"
    DT = "dt"
    DX = "dx"

    @classmethod
    def parse(cls, value: "str | EventLogType | None") -> "EventLogType":
        """解析事件类型，未知值或空值归入 general"""
        if isinstance(value, EventLogType):
            return value
        normalized = (value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.GENERAL


class ColumnRole(StrEnum):
    """栏位角色 -- 决定 create/update 时栏位值的来源"""

    IDENTITY = "identity"
    CREATOR = "creator"
    CREATED_TIME = "created_time"
    MODIFIED_TIME = "modified_time"
    REVISION = "revision"
    DATA = "data"


class ResolutionConfidence(StrEnum):
    """原始记录解析的可信度，EXACT_ID 优先"""

    EXACT_ID = "exact_id"
    ROW_INDEX_GUESS = "row_index_guess"
