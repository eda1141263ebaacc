"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出
每条日志附加 service 字段
"""

import logging
import os

import structlog

DEFAULT_SERVICE_NAME = "sheetcrm-gateway"


def add_service_name(service: str) -> structlog.types.Processor:
    """生成附加 service 字段的 processor（已绑定的 service 不覆盖）"""

    def processor(logger, method_name, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def setup_logging() -> None:
    """初始化 structlog 配置

    根据 SHEETCRM_LOG_FORMAT 环境变量选择渲染模式：
    - "json": 结构化 JSON 输出（生产环境）
    - "dev" (默认): pretty print 可读输出
    日志级别由 SHEETCRM_LOG_LEVEL 控制（默认 INFO），
    service 字段取 SHEETCRM_SERVICE_NAME（默认 sheetcrm-gateway）。
    """
    log_format = os.environ.get("SHEETCRM_LOG_FORMAT", "dev")
    log_level = os.environ.get("SHEETCRM_LOG_LEVEL", "INFO")
    service = os.environ.get("SHEETCRM_SERVICE_NAME", DEFAULT_SERVICE_NAME)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_service_name(service),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        # 中文字段值原样输出
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
