"""事件类型搬移测试

覆盖：原始记录解析顺序、搬移后 ID/建立时间保持、两阶段失败语义。
"""

from unittest.mock import AsyncMock

import pytest
from sheetcrm.core.exceptions import (
    InvalidArgumentError,
    MigrationFailureError,
    StoreFailureError,
)
from sheetcrm.core.migration import EventTypeMigrator, needs_move, resolve_original
from sheetcrm.core.models import EventLogType, EventRecord, MutationResult, ResolutionConfidence
from sheetcrm.core.store import EventLogRepository


def _record(event_id: str, event_type: str, row_index: int, **kwargs) -> EventRecord:
    return EventRecord(
        event_id=event_id,
        event_type=EventLogType(event_type),
        row_index=row_index,
        **kwargs,
    )


class TestResolveOriginal:
    def test_exact_id_preferred_over_row_guess(self):
        records = [_record("EVT1", "general", 5), _record("EVT2", "iot", 7)]
        resolved = resolve_original(records, "EVT2", 5)
        assert resolved.record.event_id == "EVT2"
        assert resolved.confidence == ResolutionConfidence.EXACT_ID

    def test_falls_back_to_row_index(self):
        records = [_record("EVT1", "general", 5)]
        resolved = resolve_original(records, "EVT404", 5)
        assert resolved.record.event_id == "EVT1"
        assert resolved.confidence == ResolutionConfidence.ROW_INDEX_GUESS

    def test_ambiguous_row_rejected(self):
        records = [_record("EVT1", "general", 3), _record("EVT2", "dt", 3)]
        with pytest.raises(InvalidArgumentError):
            resolve_original(records, None, 3)

    def test_event_type_narrows_row_guess(self):
        records = [_record("EVT1", "iot", 3), _record("EVT2", "general", 3)]
        resolved = resolve_original(records, None, 3, "general")
        assert resolved.record.event_id == "EVT2"
        assert resolved.confidence == ResolutionConfidence.ROW_INDEX_GUESS

    def test_other_type_used_when_requested_type_absent_at_row(self):
        records = [_record("EVT1", "general", 3), _record("EVT2", "dt", 4)]
        resolved = resolve_original(records, None, 3, "iot")
        assert resolved.record.event_id == "EVT1"

    def test_ambiguous_other_types_rejected(self):
        records = [_record("EVT1", "general", 3), _record("EVT2", "dt", 3)]
        with pytest.raises(InvalidArgumentError):
            resolve_original(records, None, 3, "iot")

    def test_nothing_matches(self):
        records = [_record("EVT1", "general", 3)]
        assert resolve_original(records, None, None) is None
        assert resolve_original(records, "EVT9", 8) is None


class TestNeedsMove:
    def test_type_change_detected(self):
        original = _record("EVT1", "general", 2)
        assert needs_move(original, {"event_type": "iot"}) is True
        assert needs_move(original, {"event_type": "general"}) is False
        assert needs_move(original, {"event_type": ""}) is False
        assert needs_move(original, {}) is False


class TestMove:
    async def test_move_relocates_and_keeps_identity(
        self, repository: EventLogRepository, backend, clock
    ):
        created = await repository.create(
            {"event_type": "general", "event_name": "拜訪", "visit_place": "新竹"},
            "王小明",
        )
        original = await repository.get_by_id(created.id)

        clock.advance(120)
        migrator = EventTypeMigrator(repository)
        result = await migrator.move(
            original,
            {"event_type": "iot", "iot_device_scale": "20台"},
            "李小華",
        )

        assert result.moved is True
        assert result.id == created.id
        assert len(backend.rows("EventLogs_General")) == 1

        moved = await repository.get_by_id(created.id)
        assert moved.event_type == EventLogType.IOT
        assert moved.row_index == result.row_index
        assert moved.created_time == original.created_time
        assert moved.creator == "王小明"
        assert moved.event_name == "拜訪"
        assert moved.visit_place == "新竹"
        assert moved.iot_device_scale == "20台"
        assert moved.edit_count == "2"
        assert moved.last_modified_time == "2026-01-09T08:32:00.000Z"

    async def test_caller_created_time_wins(self, repository: EventLogRepository):
        created = await repository.create({"event_type": "dt"}, "t")
        original = await repository.get_by_id(created.id)

        await EventTypeMigrator(repository).move(
            original,
            {"event_type": "dx", "created_time": "2025-05-05T00:00:00.000Z"},
            "t",
        )
        moved = await repository.get_by_id(created.id)
        assert moved.created_time == "2025-05-05T00:00:00.000Z"

    async def test_delete_failure_keeps_record(self):
        repository = AsyncMock()
        repository.delete.side_effect = StoreFailureError("EventLogs_General", OSError("down"))
        original = _record("EVT1", "general", 4, created_time="2026-01-01T00:00:00.000Z")

        with pytest.raises(MigrationFailureError) as exc_info:
            await EventTypeMigrator(repository).move(original, {"event_type": "iot"}, "t")

        assert exc_info.value.phase == "delete"
        assert exc_info.value.data_lost is False
        repository.create.assert_not_called()

    async def test_create_failure_reports_data_loss(self):
        repository = AsyncMock()
        repository.delete.return_value = MutationResult(row_index=4)
        repository.create.side_effect = StoreFailureError("EventLogs_IOT", OSError("down"))
        original = _record("EVT1", "general", 4, event_name="重要會議")

        with pytest.raises(MigrationFailureError) as exc_info:
            await EventTypeMigrator(repository).move(original, {"event_type": "iot"}, "t")

        error = exc_info.value
        assert error.phase == "create"
        assert error.data_lost is True
        assert error.event_id == "EVT1"
        assert error.record["event_name"] == "重要會議"
        assert isinstance(error.__cause__, StoreFailureError)

    async def test_pinned_identity_passed_to_create(self):
        repository = AsyncMock()
        repository.create.return_value = MutationResult(id="EVT1", row_index=9)
        original = _record(
            "EVT1",
            "iot",
            4,
            creator="原作者",
            created_time="2026-01-01T00:00:00.000Z",
            edit_count="5",
        )

        result = await EventTypeMigrator(repository).move(original, {"event_type": "dt"}, "改者")

        repository.delete.assert_awaited_once_with(4, EventLogType.IOT)
        data, modifier = repository.create.await_args.args
        pinned = repository.create.await_args.kwargs["pinned"]
        assert data["event_type"] == "dt"
        assert modifier == "改者"
        assert pinned.event_id == "EVT1"
        assert pinned.creator == "原作者"
        assert pinned.edit_count == "6"
        assert result.row_index == 9
