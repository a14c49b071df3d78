"""存储层日志配置

本包只通过 structlog 输出日志，默认不安装任何 handler，由宿主应用决定去向。
setup_logging() 供脚本/宿主按需调用：只在 "taskboard" logger 上挂 handler，
不触碰根 logger 及宿主已有的 handler。

storage_context() 通过 structlog.contextvars 绑定本次存储操作的上下文
（操作名、数据库），同一协程内的所有日志事件自动携带这些字段。
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

LOGGER_NAME = "taskboard"


class _TaskboardHandler(logging.StreamHandler):
    """标记由 setup_logging() 安装的 handler，重复调用时只替换它"""


def setup_logging(
    log_format: str | None = None,
    log_level: str | None = None,
) -> logging.Logger:
    """为 taskboard logger 命名空间配置 structlog 输出

    Args:
        log_format: "json" 或 "dev"，默认读取 TASKBOARD_LOG_FORMAT（缺省 dev）
        log_level: 日志级别名，默认读取 TASKBOARD_LOG_LEVEL（缺省 INFO）

    Returns:
        已配置的 "taskboard" 标准库 logger
    """
    log_format = log_format or os.environ.get("TASKBOARD_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("TASKBOARD_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
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
    )

    handler = _TaskboardHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    logger = logging.getLogger(LOGGER_NAME)
    for existing in [h for h in logger.handlers if isinstance(h, _TaskboardHandler)]:
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # 已由本 handler 输出，避免宿主根 logger 重复打印
    logger.propagate = False
    return logger


@contextmanager
def storage_context(op: str, database: str) -> Iterator[None]:
    """在当前协程上下文中绑定存储操作字段，退出时恢复

    Args:
        op: 操作名（如 add_tasks）
        database: 数据库路径
    """
    with structlog.contextvars.bound_contextvars(storage_op=op, database=database):
        yield
