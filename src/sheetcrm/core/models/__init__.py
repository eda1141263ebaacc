"""sheetcrm Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import ColumnRole, EventLogType, ResolutionConfidence
from .event_record import EventRecord, EventView, MutationResult, PinnedIdentity
from .related import (
    Company,
    ConfigItem,
    Opportunity,
    OpportunityPage,
    Pagination,
    StageGroup,
)

__all__ = [
    # 枚举
    "EventLogType",
    "ColumnRole",
    "ResolutionConfidence",
    # EventRecord
    "EventRecord",
    "EventView",
    "PinnedIdentity",
    "MutationResult",
    # 关联数据
    "Opportunity",
    "Company",
    "ConfigItem",
    "Pagination",
    "OpportunityPage",
    "StageGroup",
]
