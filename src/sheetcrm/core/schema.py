"""Schema Registry -- 各事件类型的栏位定义

每个事件类型对应一张工作表：共通栏位在前，类型专属栏位在后，顺序固定。
栏位标题（工作表 header）与领域对象 key 的对应关系在此显式列举；
跨类型共用但 key 不同的旧标题由 (label, type) 覆盖表处理。
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .a1 import column_letter
from .models.enums import ColumnRole, EventLogType
from .models.event_record import EventRecord


@dataclass(frozen=True)
class ColumnSpec:
    """单个栏位定义"""

    label: str
    key: str
    role: ColumnRole = ColumnRole.DATA


COMMON_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("事件ID", "event_id", ColumnRole.IDENTITY),
    ColumnSpec("事件名稱", "event_name"),
    ColumnSpec("關聯機會ID", "opportunity_id"),
    ColumnSpec("關聯公司ID", "company_id"),
    ColumnSpec("建立者", "creator", ColumnRole.CREATOR),
    ColumnSpec("建立時間", "created_time", ColumnRole.CREATED_TIME),
    ColumnSpec("最後修改時間", "last_modified_time", ColumnRole.MODIFIED_TIME),
    ColumnSpec("我方與會人員", "our_participants"),
    ColumnSpec("客戶與會人員", "client_participants"),
    ColumnSpec("會議地點", "visit_place"),
    ColumnSpec("會議內容", "event_content"),
    ColumnSpec("客戶提問", "client_questions"),
    ColumnSpec("客戶情報", "client_intelligence"),
    ColumnSpec("備註", "event_notes"),
    ColumnSpec("修訂版次", "edit_count", ColumnRole.REVISION),
    ColumnSpec("狀態", "status"),
)

IOT_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("設備規模", "iot_device_scale"),
    ColumnSpec("生產線特徵", "iot_line_features"),
    ColumnSpec("生產現況", "iot_production_status"),
    ColumnSpec("IoT現況", "iot_iot_status"),
    ColumnSpec("痛點分類", "iot_pain_points"),
    ColumnSpec("客戶痛點說明", "iot_pain_point_details"),
    ColumnSpec("痛點分析與對策", "iot_pain_point_analysis"),
    ColumnSpec("系統架構", "iot_system_architecture"),
)

DT_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("加工類型", "dt_processing_type"),
    ColumnSpec("加工產業別", "dt_industry"),
)

# general 与 dx 只使用共通栏位
TYPE_COLUMNS: dict[EventLogType, tuple[ColumnSpec, ...]] = {
    EventLogType.GENERAL: (),
    EventLogType.IOT: IOT_COLUMNS,
    EventLogType.DT: DT_COLUMNS,
    EventLogType.DX: (),
}

# 通用 label -> key 对应
LABEL_TO_KEY: dict[str, str] = {
    col.label: col.key for col in COMMON_COLUMNS + IOT_COLUMNS + DT_COLUMNS
}

# (label, type) -> key 覆盖表；未定义时退回 LABEL_TO_KEY
DEFAULT_LABEL_OVERRIDES: dict[tuple[str, EventLogType], str] = {
    ("設備規模", EventLogType.IOT): "iot_device_scale",
}

DEFAULT_TABLE_NAMES: dict[EventLogType, str] = {
    EventLogType.GENERAL: "EventLogs_General",
    EventLogType.IOT: "EventLogs_IOT",
    EventLogType.DT: "EventLogs_DT",
    EventLogType.DX: "EventLogs_DX",
}


@dataclass(frozen=True)
class TableSchema:
    """一张事件工作表的完整栏位定义"""

    event_type: EventLogType
    table_name: str
    columns: tuple[ColumnSpec, ...]

    @property
    def labels(self) -> list[str]:
        return [col.label for col in self.columns]

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def last_column(self) -> str:
        return column_letter(self.width)

    def index_of(self, key: str) -> int | None:
        """key 所在的 0-based 栏位索引"""
        for index, col in enumerate(self.columns):
            if col.key == key:
                return index
        return None


class SchemaRegistry:
    """Schema 注册表

    启动时根据工作表名称配置建立，运行期间不变。纯函数，无 I/O。
    """

    def __init__(
        self,
        table_names: Mapping[EventLogType, str] | None = None,
        overrides: Mapping[tuple[str, EventLogType], str] | None = None,
    ) -> None:
        names = dict(DEFAULT_TABLE_NAMES)
        if table_names:
            names.update(table_names)
        self._overrides = dict(DEFAULT_LABEL_OVERRIDES if overrides is None else overrides)
        self._schemas: dict[EventLogType, TableSchema] = {
            event_type: TableSchema(
                event_type=event_type,
                table_name=names[event_type],
                columns=COMMON_COLUMNS + TYPE_COLUMNS[event_type],
            )
            for event_type in EventLogType
        }

    @classmethod
    def from_config(cls, config) -> "SchemaRegistry":
        """从 SheetConfig 建立"""
        return cls(
            table_names={
                EventLogType.GENERAL: config.event_logs_general,
                EventLogType.IOT: config.event_logs_iot,
                EventLogType.DT: config.event_logs_dt,
                EventLogType.DX: config.event_logs_dx,
            }
        )

    def schema_for(self, event_type: EventLogType | str | None) -> TableSchema:
        return self._schemas[EventLogType.parse(event_type)]

    def table_name_for(self, event_type: EventLogType | str | None) -> str:
        return self.schema_for(event_type).table_name

    def labels_for(self, event_type: EventLogType | str | None) -> list[str]:
        return self.schema_for(event_type).labels

    def all_schemas(self) -> list[TableSchema]:
        return list(self._schemas.values())

    def resolve_key(self, label: str, event_type: EventLogType | str | None) -> str | None:
        """栏位标题 -> 领域 key

        先查 (label, type) 覆盖表，再查通用对应；未知标题返回 None。
        """
        override = self._overrides.get((label, EventLogType.parse(event_type)))
        if override is not None:
            return override
        return LABEL_TO_KEY.get(label)

    def row_to_record(
        self,
        row: Sequence[str],
        event_type: EventLogType | str | None,
        row_index: int,
    ) -> EventRecord:
        """工作表行 -> EventRecord（短行缺少的栏位视为空）"""
        schema = self.schema_for(event_type)
        values: dict[str, Any] = {}
        for index, col in enumerate(schema.columns):
            key = self.resolve_key(col.label, schema.event_type)
            if key is None or key not in EventRecord.model_fields:
                continue
            cell = row[index] if index < len(row) else ""
            values[key] = "" if cell is None else str(cell)
        return EventRecord(event_type=schema.event_type, row_index=row_index, **values)
