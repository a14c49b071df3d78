"""StorageConfig -- 存储层配置加载

从环境变量加载配置，并解析连接字符串（DSN）。

DSN 形式:
    sqlite:///relative/path.db
    sqlite:////absolute/path.db
    sqlite:///:memory:
可选查询参数 pool_max_conns=<int> 覆盖连接池大小。
"""

import os
from urllib.parse import parse_qsl

import structlog
from pydantic import BaseModel, Field

from .exceptions import InvalidDSNError

log = structlog.get_logger()

DSN_PREFIX = "sqlite:///"
MEMORY_DATABASE = ":memory:"

_DEFAULT_DSN = DSN_PREFIX + "data/sqlite/taskboard.db"
_DSN_PARAMS = {"pool_max_conns"}


class StorageConfig(BaseModel):
    """存储层配置 -- 从环境变量加载

    环境变量:
        TASKBOARD_DSN: 连接字符串
        TASKBOARD_POOL_MAX_CONNS: 连接池最大连接数（默认 4）
        TASKBOARD_BUSY_TIMEOUT_MS: SQLite busy_timeout（毫秒，默认 5000）
        TASKBOARD_OP_TIMEOUT_S: 单次操作超时（秒，默认不限）
    """

    dsn: str = Field(default=_DEFAULT_DSN, description="数据库连接字符串")
    pool_max_conns: int = Field(default=4, ge=1, description="连接池最大连接数")
    busy_timeout_ms: int = Field(default=5000, ge=0, description="锁等待超时（毫秒）")
    op_timeout_s: float | None = Field(
        default=None,
        gt=0,
        description="单次存储操作超时（秒），None 表示不限",
    )


class SqliteDSN(BaseModel):
    """解析后的连接字符串"""

    database: str = Field(description="数据库文件路径或 :memory:")
    pool_max_conns: int | None = Field(default=None, ge=1, description="DSN 中指定的连接池大小")

    @property
    def is_memory(self) -> bool:
        return self.database == MEMORY_DATABASE


def parse_dsn(dsn: str) -> SqliteDSN:
    """解析 DSN

    Raises:
        InvalidDSNError: scheme 错误、路径为空、未知或非法的查询参数
    """
    if not dsn.startswith(DSN_PREFIX):
        raise InvalidDSNError(dsn, f"expected scheme prefix {DSN_PREFIX!r}")

    path, _, query = dsn[len(DSN_PREFIX) :].partition("?")
    if not path:
        raise InvalidDSNError(dsn, "empty database path")

    pool_max_conns: int | None = None
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key not in _DSN_PARAMS:
            raise InvalidDSNError(dsn, f"unknown parameter {key!r}")
        try:
            pool_max_conns = int(value)
        except ValueError:
            raise InvalidDSNError(dsn, f"pool_max_conns must be an integer, got {value!r}") from None
        if pool_max_conns < 1:
            raise InvalidDSNError(dsn, "pool_max_conns must be >= 1")

    return SqliteDSN(database=path, pool_max_conns=pool_max_conns)


def load_storage_config() -> StorageConfig:
    """从环境变量加载存储配置

    环境变量映射:
        TASKBOARD_DSN -> dsn
        TASKBOARD_POOL_MAX_CONNS -> pool_max_conns (默认 4)
        TASKBOARD_BUSY_TIMEOUT_MS -> busy_timeout_ms (默认 5000)
        TASKBOARD_OP_TIMEOUT_S -> op_timeout_s (默认 None)

    数值无法解析或超出范围（连接数 < 1、busy_timeout < 0、操作超时 <= 0）时
    记录告警并使用默认值，不阻塞启动。
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKBOARD_DSN"):
        kwargs["dsn"] = val

    if val := os.environ.get("TASKBOARD_POOL_MAX_CONNS"):
        try:
            pool_max_conns = int(val)
            if pool_max_conns < 1:
                raise ValueError(val)
            kwargs["pool_max_conns"] = pool_max_conns
        except ValueError:
            log.warning(
                "invalid_pool_config",
                env_var="TASKBOARD_POOL_MAX_CONNS",
                value=val,
                fallback=4,
            )

    if val := os.environ.get("TASKBOARD_BUSY_TIMEOUT_MS"):
        try:
            busy_timeout_ms = int(val)
            if busy_timeout_ms < 0:
                raise ValueError(val)
            kwargs["busy_timeout_ms"] = busy_timeout_ms
        except ValueError:
            log.warning(
                "invalid_busy_timeout_config",
                env_var="TASKBOARD_BUSY_TIMEOUT_MS",
                value=val,
                fallback=5000,
            )

    if val := os.environ.get("TASKBOARD_OP_TIMEOUT_S"):
        try:
            op_timeout_s = float(val)
            if not op_timeout_s > 0:
                raise ValueError(val)
            kwargs["op_timeout_s"] = op_timeout_s
        except ValueError:
            log.warning(
                "invalid_op_timeout_config",
                env_var="TASKBOARD_OP_TIMEOUT_S",
                value=val,
                fallback=None,
            )

    return StorageConfig(**kwargs)
