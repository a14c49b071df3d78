"""aiosqlite 连接池

连接按需创建（构建连接池本身不连接数据库），上限为 max_size。
每个连接以 autocommit 模式打开，事务由调用方显式 BEGIN / COMMIT。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite
import structlog

from ..config import SqliteDSN
from ..exceptions import PoolClosedError

log = structlog.get_logger()


class ConnectionPool:
    """aiosqlite 连接池

    acquire() 借出一个连接，离开上下文时归还（无论成功或失败）。
    归还时若连接仍处于事务中，先回滚；回滚失败的连接直接关闭丢弃。
    """

    def __init__(
        self,
        dsn: SqliteDSN,
        max_size: int = 4,
        busy_timeout_ms: int = 5000,
    ) -> None:
        # :memory: 数据库只对单个连接可见
        if dsn.is_memory:
            max_size = 1
        self._database = dsn.database
        self._max_size = max_size
        self._busy_timeout_ms = busy_timeout_ms
        self._idle: asyncio.LifoQueue[aiosqlite.Connection] = asyncio.LifoQueue()
        self._slots = asyncio.Semaphore(max_size)
        self._size = 0
        self._closed = False

    @property
    def database(self) -> str:
        return self._database

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def size(self) -> int:
        """当前已打开的连接数（含借出的）"""
        return self._size

    @property
    def idle(self) -> int:
        return self._idle.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """借出连接

        Raises:
            PoolClosedError: 连接池已关闭
        """
        if self._closed:
            raise PoolClosedError()

        await self._slots.acquire()
        # 等待名额期间连接池可能已被关闭
        if self._closed:
            self._slots.release()
            raise PoolClosedError()
        try:
            conn = await self._checkout()
        except BaseException:
            self._slots.release()
            raise

        try:
            yield conn
        finally:
            try:
                await self._checkin(conn)
            finally:
                self._slots.release()

    async def close(self) -> None:
        """关闭连接池：关闭所有空闲连接，之后的 acquire() 将失败

        借出中的连接在归还时关闭。
        """
        if self._closed:
            return
        self._closed = True
        while not self._idle.empty():
            await self._discard(self._idle.get_nowait())
        log.info("pool_closed", database=self._database)

    async def _checkout(self) -> aiosqlite.Connection:
        if not self._idle.empty():
            return self._idle.get_nowait()
        return await self._connect()

    async def _checkin(self, conn: aiosqlite.Connection) -> None:
        if conn.in_transaction:
            try:
                await conn.rollback()
            except aiosqlite.Error as e:
                log.warning(
                    "pool_rollback_failed",
                    database=self._database,
                    error=str(e),
                )
                await self._discard(conn)
                return

        if self._closed:
            await self._discard(conn)
            return
        self._idle.put_nowait(conn)

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self._database, isolation_level=None)
        try:
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys = ON;")
            await conn.execute(f"PRAGMA busy_timeout = {int(self._busy_timeout_ms)};")
        except BaseException:
            await conn.close()
            raise
        self._size += 1
        log.debug("pool_connection_opened", database=self._database, size=self._size)
        return conn

    async def _discard(self, conn: aiosqlite.Connection) -> None:
        self._size -= 1
        await conn.close()
        log.debug("pool_connection_closed", database=self._database, size=self._size)
