"""事件紀录存储异常体系

InvalidArgumentError / RecordNotFoundError / StoreFailureError / MigrationFailureError
四类错误；MigrationFailureError 单独区分，表示可能已发生数据丢失。
"""

from typing import Any


class EventLogError(Exception):
    """事件紀录存储基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 调用方修正输入或重试后是否可能成功
        """
        super().__init__(message)
        self.recoverable = recoverable


class InvalidArgumentError(EventLogError):
    """参数非法（rowIndex 非整数、指向标题行等）"""

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)


class RecordNotFoundError(EventLogError):
    """目标物理行不存在（或事件 ID 无法解析）"""

    def __init__(self, message: str, table: str = "", row_index: int | None = None) -> None:
        super().__init__(message, recoverable=False)
        self.table = table
        self.row_index = row_index


class StoreFailureError(EventLogError):
    """底层表格调用失败

    包装 backend 抛出的原始异常，不做自动重试。
    """

    def __init__(self, table: str, original_error: Exception) -> None:
        """
        Args:
            table: 操作的工作表名称
            original_error: 原始异常
        """
        super().__init__(
            f"表格操作失败: {table} -- {original_error}",
            recoverable=True,
        )
        self.table = table
        self.original_error = original_error


class MigrationFailureError(EventLogError):
    """事件类型搬移（delete + create）中途失败

    phase="delete": 旧表删除失败，记录仍在原表，无数据丢失。
    phase="create": 旧表已删除但新表建立失败，记录已从两张表中消失，
    record 中保留搬移前的完整快照供人工恢复。
    """

    def __init__(
        self,
        phase: str,
        event_id: str,
        original_error: Exception,
        record: dict[str, Any] | None = None,
    ) -> None:
        self.phase = phase
        self.event_id = event_id
        self.data_lost = phase == "create"
        self.record = record
        self.original_error = original_error
        if self.data_lost:
            message = f"事件 {event_id} 搬移失败：旧记录已删除，新记录建立失败 -- {original_error}"
        else:
            message = f"事件 {event_id} 搬移失败：旧记录删除失败 -- {original_error}"
        super().__init__(message, recoverable=False)
