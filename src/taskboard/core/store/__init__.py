"""taskboard Core Store -- SQLite 持久化实现

提供工厂函数，根据连接字符串创建持有独立连接池的 TaskStorage 实例。
"""

from pathlib import Path

import structlog

from ..config import StorageConfig, parse_dsn
from .pool import ConnectionPool
from .protocols import TaskStorage
from .sqlite_init import init_db
from .task_store import SqliteTaskStorage
from .transaction import transaction

log = structlog.get_logger()


async def create_task_storage(
    config: StorageConfig | str,
    *,
    init_schema: bool = False,
) -> SqliteTaskStorage:
    """创建 TaskStorage 实例

    构建连接池只校验 DSN，不保证数据库可达；init_schema=True 时会借出一个连接建表。

    Args:
        config: StorageConfig 或 DSN 字符串
        init_schema: 是否初始化最小 schema

    Returns:
        SqliteTaskStorage 实例

    Raises:
        InvalidDSNError: DSN 格式错误
    """
    if isinstance(config, str):
        config = StorageConfig(dsn=config)

    dsn = parse_dsn(config.dsn)
    if not dsn.is_memory:
        # 确保数据库目录存在
        Path(dsn.database).parent.mkdir(parents=True, exist_ok=True)

    pool = ConnectionPool(
        dsn,
        max_size=dsn.pool_max_conns or config.pool_max_conns,
        busy_timeout_ms=config.busy_timeout_ms,
    )

    if init_schema:
        try:
            async with pool.acquire() as conn:
                await init_db(conn)
        except BaseException:
            await pool.close()
            raise

    log.info(
        "task_storage_ready",
        database=dsn.database,
        pool_max_conns=pool.max_size,
        schema_initialized=init_schema,
    )
    return SqliteTaskStorage(pool, op_timeout_s=config.op_timeout_s)


__all__ = [
    "TaskStorage",
    "SqliteTaskStorage",
    "ConnectionPool",
    "create_task_storage",
    "init_db",
    "transaction",
]
