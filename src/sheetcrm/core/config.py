"""配置模块 -- 可通过环境变量覆盖

包含数据库路径、各类事件工作表名称、快取 TTL、日历同步地址等配置。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("SHEETCRM_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 表格存储路径"""
    return os.environ.get(
        "SHEETCRM_DB_PATH",
        str(_get_base_dir() / "sqlite" / "sheetcrm.db"),
    )


# 事件 ID 前缀（后接毫秒时间戳）
EVENT_ID_PREFIX: str = "EVT"

# 事件紀录列表在快取中的 key，所有写入操作都会失效此 key
EVENT_LOGS_CACHE_KEY: str = "event_logs"

# 封存状态值，默认列表排除
ARCHIVED_STATUS: str = "已封存"

# 进行中的机会状态
OPPORTUNITY_ACTIVE_STATUS: str = "進行中"

# 机会搜索每页条数
OPPORTUNITIES_PER_PAGE: int = int(os.environ.get("SHEETCRM_OPPORTUNITIES_PER_PAGE", "30"))


class SheetConfig(BaseModel):
    """工作表配置 -- 从环境变量加载

    环境变量:
        SHEETCRM_TABLE_GENERAL / IOT / DT / DX: 各类事件工作表名称
        SHEETCRM_TABLE_OPPORTUNITIES / COMPANIES / SYSTEM_CONFIG: 关联数据工作表
        SHEETCRM_CACHE_TTL_S: 事件列表快取 TTL（秒），0 表示不过期
        SHEETCRM_CALENDAR_WEBHOOK_URL: 日历同步 webhook，空表示不同步
    """

    event_logs_general: str = Field(default="EventLogs_General", description="一般事件工作表")
    event_logs_iot: str = Field(default="EventLogs_IOT", description="IOT 事件工作表")
    event_logs_dt: str = Field(default="EventLogs_DT", description="DT 事件工作表")
    event_logs_dx: str = Field(default="EventLogs_DX", description="DX 事件工作表")
    opportunities: str = Field(default="Opportunities", description="机会案件工作表")
    companies: str = Field(default="Companies", description="公司工作表")
    system_config: str = Field(default="SystemConfig", description="系统设定工作表")
    cache_ttl_s: int = Field(default=0, ge=0, description="事件列表快取 TTL（秒）")
    calendar_webhook_url: str = Field(default="", description="日历同步 webhook 地址")
    calendar_timeout_s: int = Field(default=10, ge=1, description="日历同步超时（秒）")


_TABLE_ENV_VARS: dict[str, str] = {
    "SHEETCRM_TABLE_GENERAL": "event_logs_general",
    "SHEETCRM_TABLE_IOT": "event_logs_iot",
    "SHEETCRM_TABLE_DT": "event_logs_dt",
    "SHEETCRM_TABLE_DX": "event_logs_dx",
    "SHEETCRM_TABLE_OPPORTUNITIES": "opportunities",
    "SHEETCRM_TABLE_COMPANIES": "companies",
    "SHEETCRM_TABLE_SYSTEM_CONFIG": "system_config",
}


def _read_int_env(env_var: str, default: int) -> int | None:
    val = os.environ.get(env_var)
    if not val:
        return None
    try:
        return int(val)
    except ValueError:
        log.warning(
            "invalid_int_config",
            env_var=env_var,
            value=val,
            fallback=default,
        )
        # 使用默认值，不阻塞启动
        return None


def load_sheet_config() -> SheetConfig:
    """从环境变量加载工作表配置

    Returns:
        SheetConfig 实例
    """
    kwargs: dict = {}

    for env_var, field_name in _TABLE_ENV_VARS.items():
        if val := os.environ.get(env_var):
            kwargs[field_name] = val

    if (ttl := _read_int_env("SHEETCRM_CACHE_TTL_S", 0)) is not None:
        kwargs["cache_ttl_s"] = ttl

    if val := os.environ.get("SHEETCRM_CALENDAR_WEBHOOK_URL"):
        kwargs["calendar_webhook_url"] = val

    if (timeout := _read_int_env("SHEETCRM_CALENDAR_TIMEOUT_S", 10)) is not None:
        kwargs["calendar_timeout_s"] = timeout

    return SheetConfig(**kwargs)
