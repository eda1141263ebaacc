"""HttpCalendarClient 测试 -- 使用 httpx.MockTransport"""

import json

import httpx
import pytest
from sheetcrm.gateway.services.calendar import (
    CalendarEventPayload,
    CalendarSyncError,
    HttpCalendarClient,
)

PAYLOAD = CalendarEventPayload(
    summary="[iot] 產線會議",
    description="討論",
    start="2026-01-09T08:30:00.000Z",
    end="2026-01-09T09:30:00.000Z",
)


class TestHttpCalendarClient:
    async def test_posts_calendar_body(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"ok": True})

        client = HttpCalendarClient(
            "http://calendar.test/hook", transport=httpx.MockTransport(handler)
        )
        await client.create_event(PAYLOAD)

        assert len(captured) == 1
        assert captured[0].method == "POST"
        body = json.loads(captured[0].content)
        assert body["summary"] == "[iot] 產線會議"
        assert body["start"] == {"dateTime": "2026-01-09T08:30:00.000Z"}
        assert body["end"] == {"dateTime": "2026-01-09T09:30:00.000Z"}

    async def test_non_2xx_raises(self):
        client = HttpCalendarClient(
            "http://calendar.test/hook",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(CalendarSyncError) as exc_info:
            await client.create_event(PAYLOAD)
        assert exc_info.value.status_code == 503

    async def test_network_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = HttpCalendarClient(
            "http://calendar.test/hook", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(CalendarSyncError) as exc_info:
            await client.create_event(PAYLOAD)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
