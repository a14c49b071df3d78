"""TaskStorage SQLite 实现

每个操作从连接池借出一个连接，操作结束（成功或失败）即归还。
所有 SQL 参数化；引擎错误原样透传，仅 "无匹配行" 转换为 TaskNotFoundError。
"""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import aiosqlite
import structlog

from ..exceptions import TaskNotFoundError
from ..logging_config import storage_context
from ..models.task import Task
from .pool import ConnectionPool
from .transaction import transaction

log = structlog.get_logger()

_TASK_COLUMNS = "id, opened, closed, author_id, assigned_id, title, content"

_INSERT_TASK_SQL = "INSERT INTO tasks (title, content) VALUES (?, ?)"


class SqliteTaskStorage:
    """TaskStorage 的 SQLite 实现

    Args:
        pool: 本实例持有的连接池
        op_timeout_s: 单次操作超时（秒），None 表示不限；超时抛出 TimeoutError
    """

    def __init__(self, pool: ConnectionPool, op_timeout_s: float | None = None) -> None:
        self._pool = pool
        self._op_timeout_s = op_timeout_s

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    async def close(self) -> None:
        await self._pool.close()

    async def tasks(self) -> list[Task]:
        """全部任务，按 id 升序"""
        return await self._fetch_tasks(
            "tasks",
            f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY id",
            (),
        )

    async def task_by_id(self, task_id: int) -> Task:
        """根据 id 查询任务"""
        async with self._connection("task_by_id") as conn:
            cursor = await conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?",
                (task_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            raise TaskNotFoundError(task_id)
        return self._row_to_task(row)

    async def tasks_by_author(self, author_id: int) -> list[Task]:
        """指定作者的任务，按 id 升序"""
        return await self._fetch_tasks(
            "tasks_by_author",
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE author_id = ? ORDER BY id",
            (author_id,),
        )

    async def tasks_by_label(self, label_id: int) -> list[Task]:
        """关联了指定标签的任务，按 id 升序"""
        return await self._fetch_tasks(
            "tasks_by_label",
            f"""
            SELECT {_TASK_COLUMNS} FROM tasks
            WHERE id IN (
                SELECT task_id FROM tasks_labels WHERE label_id = ?
            )
            ORDER BY id
            """,
            (label_id,),
        )

    async def add_task(self, task: Task) -> int:
        """创建任务，返回新 id（仅写入 title 与 content）"""
        async with self._connection("add_task") as conn:
            cursor = await conn.execute(_INSERT_TASK_SQL, (task.title, task.content))
            task_id = cursor.lastrowid
            log.debug("task_added", task_id=task_id)
        return task_id

    async def add_tasks(self, tasks: list[Task]) -> list[int]:
        """在单个事务内逐条创建任务

        任一条失败（包括取消、超时）时回滚本次已插入的全部行并抛出原始错误。
        """
        ids: list[int] = []
        async with self._connection("add_tasks") as conn:
            try:
                async with transaction(conn):
                    for task in tasks:
                        cursor = await conn.execute(
                            _INSERT_TASK_SQL,
                            (task.title, task.content),
                        )
                        ids.append(cursor.lastrowid)
            except BaseException as e:
                log.warning(
                    "tasks_add_rolled_back",
                    requested=len(tasks),
                    inserted_before_failure=len(ids),
                    error_type=type(e).__name__,
                )
                raise
            log.info("tasks_added", count=len(ids))
        return ids

    async def add_tasks_batch(self, tasks: list[Task]) -> None:
        """驱动级批量创建任务（executemany）

        没有外层事务：autocommit 连接上每一行独立生效。
        某一行失败时抛出该错误，之前已生效的行不会回滚。
        """
        params = [(task.title, task.content) for task in tasks]
        async with self._connection("add_tasks_batch") as conn:
            try:
                await conn.executemany(_INSERT_TASK_SQL, params)
            except aiosqlite.Error as e:
                log.warning(
                    "tasks_batch_failed",
                    requested=len(params),
                    error=str(e),
                )
                raise
            log.info("tasks_batch_added", count=len(params))

    async def update_task(self, task: Task) -> None:
        """按 task.id 整行替换

        没有匹配行时不报错（仅记录告警）。
        """
        async with self._connection("update_task") as conn:
            cursor = await conn.execute(
                """
                UPDATE tasks
                SET opened = ?, closed = ?, author_id = ?, assigned_id = ?,
                    title = ?, content = ?
                WHERE id = ?
                """,
                (
                    task.opened,
                    task.closed,
                    task.author_id,
                    task.assigned_id,
                    task.title,
                    task.content,
                    task.id,
                ),
            )
            if cursor.rowcount == 0:
                log.warning("task_update_no_match", task_id=task.id)

    async def delete_task(self, task_id: int) -> None:
        """按 id 删除任务，没有匹配行时不报错（仅记录告警）"""
        async with self._connection("delete_task") as conn:
            cursor = await conn.execute(
                "DELETE FROM tasks WHERE id = ?",
                (task_id,),
            )
            if cursor.rowcount == 0:
                log.warning("task_delete_no_match", task_id=task_id)

    @asynccontextmanager
    async def _connection(self, op: str) -> AsyncIterator[aiosqlite.Connection]:
        """借出连接：绑定日志上下文，并受 op_timeout_s 约束"""
        with storage_context(op, self._pool.database):
            async with asyncio.timeout(self._op_timeout_s), self._pool.acquire() as conn:
                yield conn

    async def _fetch_tasks(self, op: str, sql: str, params: Iterable) -> list[Task]:
        async with self._connection(op) as conn:
            cursor = await conn.execute(sql, tuple(params))
            rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            id=row["id"],
            opened=row["opened"],
            closed=row["closed"],
            author_id=row["author_id"],
            assigned_id=row["assigned_id"],
            title=row["title"],
            content=row["content"],
        )
