"""日历同步 -- 建立事件后可选地推送到外部日历

通过 webhook POST 一个 JSON 事件；同步是尽力而为的副作用，
失败由调用方记录后吞掉，不影响事件建立结果。
"""

from typing import Protocol

import httpx
import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


class CalendarSyncError(Exception):
    """日历同步失败"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CalendarEventPayload(BaseModel):
    """推送到日历的事件"""

    summary: str = Field(description="标题，格式为 [事件类型] 事件名称")
    description: str = Field(default="")
    start: str = Field(description="开始时间（ISO-8601）")
    end: str = Field(description="结束时间（ISO-8601）")

    def to_calendar_body(self) -> dict:
        return {
            "summary": self.summary,
            "description": self.description,
            "start": {"dateTime": self.start},
            "end": {"dateTime": self.end},
        }


class CalendarSink(Protocol):
    """日历写入接口"""

    async def create_event(self, event: CalendarEventPayload) -> None: ...


class HttpCalendarClient:
    """基于 httpx 的 webhook 日历客户端"""

    def __init__(
        self,
        webhook_url: str,
        timeout_s: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._timeout_s = timeout_s
        self._transport = transport

    async def create_event(self, event: CalendarEventPayload) -> None:
        """POST 事件到 webhook

        Raises:
            CalendarSyncError: 网络错误或非 2xx 响应
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.post(self._webhook_url, json=event.to_calendar_body())
        except httpx.HTTPError as e:
            raise CalendarSyncError(f"日历同步请求失败: {e}") from e

        if not response.is_success:
            raise CalendarSyncError(
                f"日历同步返回 HTTP {response.status_code}",
                status_code=response.status_code,
            )
        log.info("calendar_event_created", summary=event.summary)
