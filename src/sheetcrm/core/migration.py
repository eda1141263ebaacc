"""事件类型搬移 -- 事件类型变更时把记录从原工作表移到新工作表

搬移 = 从原表删除 + 在新表建立，两步之间没有事务：
- 删除失败：记录仍在原表，抛出 MigrationFailureError(phase="delete")
- 删除成功但建立失败：记录已从两张表中消失，
  抛出 MigrationFailureError(phase="create")，并携带搬移前的完整快照

搬移后 event_id 与建立时间保持不变，rowIndex 改变。
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from .exceptions import InvalidArgumentError, MigrationFailureError
from .models.enums import EventLogType, ResolutionConfidence
from .models.event_record import EventRecord, MutationResult, PinnedIdentity
from .schema import COMMON_COLUMNS
from .store.event_log_store import EventLogRepository, parse_revision

log = structlog.get_logger()

# 搬移时沿用原记录值作为底稿的共通内容栏位（身份与时间类栏位另行处理）
_CARRIED_KEYS: tuple[str, ...] = tuple(
    col.key
    for col in COMMON_COLUMNS
    if col.key not in {"event_id", "creator", "created_time", "last_modified_time", "edit_count"}
)


@dataclass(frozen=True)
class ResolvedRecord:
    """定位到的原始记录及其可信度"""

    record: EventRecord
    confidence: ResolutionConfidence


def resolve_original(
    records: Sequence[EventRecord],
    event_id: str | None,
    row_index: int | None,
    event_type: EventLogType | str | None = None,
) -> ResolvedRecord | None:
    """在全部事件中定位更新目标

    优先按 event_id 精确匹配；找不到时退回按 rowIndex 猜测。
    rowIndex 在不同工作表间不唯一：指定 event_type 时只在该类型中猜测，
    该类型在此行没有记录时才考虑其他工作表。

    Raises:
        InvalidArgumentError: 按 rowIndex 猜测时命中多张工作表，无法确定目标
    """
    if event_id:
        for record in records:
            if record.event_id == event_id:
                return ResolvedRecord(record, ResolutionConfidence.EXACT_ID)

    if row_index is None:
        return None

    matches = [record for record in records if record.row_index == row_index]
    if event_type:
        wanted = EventLogType.parse(event_type)
        same_type = [record for record in matches if record.event_type == wanted]
        if same_type:
            return ResolvedRecord(same_type[0], ResolutionConfidence.ROW_INDEX_GUESS)

    if not matches:
        return None
    if len(matches) > 1:
        log.warning(
            "original_record_ambiguous",
            row_index=row_index,
            candidates=[m.event_id for m in matches],
        )
        raise InvalidArgumentError(
            f"第 {row_index} 行在多张事件工作表中都有记录，请提供 event_id"
        )
    return ResolvedRecord(matches[0], ResolutionConfidence.ROW_INDEX_GUESS)


def needs_move(original: EventRecord, data: Mapping[str, Any]) -> bool:
    """payload 指定的事件类型与原记录所在类型不同时需要搬移"""
    requested = data.get("event_type")
    if requested is None or requested == "":
        return False
    return EventLogType.parse(requested) != original.event_type


class EventTypeMigrator:
    """事件类型搬移协调器"""

    def __init__(self, repository: EventLogRepository) -> None:
        self._repository = repository

    async def move(
        self,
        original: EventRecord,
        data: Mapping[str, Any],
        modifier: str,
    ) -> MutationResult:
        """把 original 搬到 data["event_type"] 对应的工作表

        新记录以原记录的共通栏位为底稿，再叠加 payload 中非 None 的值；
        event_id、建立者沿用原值；建立时间 payload 未指定时沿用原值；
        修订版次在原值基础上 +1。

        Raises:
            MigrationFailureError: 删除或建立阶段失败
        """
        target_type = EventLogType.parse(data.get("event_type"))
        snapshot = original.field_values()

        log.info(
            "event_log_move_started",
            event_id=original.event_id,
            from_type=original.event_type.value,
            to_type=target_type.value,
            row_index=original.row_index,
            modifier=modifier,
        )

        merged: dict[str, Any] = {key: snapshot.get(key, "") for key in _CARRIED_KEYS}
        merged.update({key: value for key, value in data.items() if value is not None})
        merged["event_type"] = target_type.value

        pinned = PinnedIdentity(
            event_id=original.event_id,
            # payload 显式带入的建立时间优先
            created_time=data.get("created_time") or original.created_time,
            creator=original.creator,
            edit_count=str(parse_revision(original.edit_count) + 1),
        )

        try:
            await self._repository.delete(original.row_index, original.event_type)
        except Exception as e:
            log.warning(
                "event_log_move_delete_failed",
                event_id=original.event_id,
                error=str(e),
            )
            raise MigrationFailureError(
                phase="delete",
                event_id=original.event_id,
                original_error=e,
            ) from e

        try:
            result = await self._repository.create(merged, modifier, pinned=pinned)
        except Exception as e:
            # 旧行已删除，新行未建立：记录完整快照供人工恢复
            log.error(
                "event_log_move_data_lost",
                event_id=original.event_id,
                from_type=original.event_type.value,
                to_type=target_type.value,
                record=snapshot,
                error=str(e),
            )
            raise MigrationFailureError(
                phase="create",
                event_id=original.event_id,
                original_error=e,
                record=snapshot,
            ) from e

        log.info(
            "event_log_moved",
            event_id=original.event_id,
            to_type=target_type.value,
            row_index=result.row_index,
        )
        return MutationResult(
            success=True,
            id=original.event_id,
            row_index=result.row_index,
            moved=True,
        )
