"""显式事务封装

连接池中的连接处于 autocommit 模式，需要多语句原子提交时，
在同一连接上 BEGIN，成功后 COMMIT，任何失败（包括取消、超时）都先 ROLLBACK 再抛出。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite


@asynccontextmanager
async def transaction(conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """在同一连接上开启事务

    Args:
        conn: autocommit 模式的数据库连接

    Raises:
        原始异常: 事务体或提交失败时，回滚后原样抛出
    """
    await conn.execute("BEGIN")
    try:
        yield conn
        await conn.commit()
    except BaseException:
        # 取消 / 超时同样需要回滚
        await conn.rollback()
        raise
