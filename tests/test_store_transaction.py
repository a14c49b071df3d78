"""多行插入原子性测试

测试内容：
1. add_tasks：单事务，全部成功或全部回滚（包括取消）
2. add_tasks_batch：驱动级批量插入，失败时报告错误，不保证回滚
3. transaction() 封装的提交/回滚
"""

import asyncio

import pytest
from taskboard.core.exceptions import ConstraintViolation, EngineError
from taskboard.core.models import Task
from taskboard.core.store import transaction


class TestAddTasks:
    """事务性多行插入测试"""

    async def test_ids_in_input_order(self, storage):
        titles = ["first", "second", "third"]
        ids = await storage.add_tasks([Task(title=t, content=t.upper()) for t in titles])

        assert len(ids) == 3
        assert ids == sorted(ids)
        for task_id, title in zip(ids, titles, strict=True):
            stored = await storage.task_by_id(task_id)
            assert stored.title == title
            assert stored.content == title.upper()
            assert stored.author_id == 0

    async def test_empty_input(self, storage):
        assert await storage.add_tasks([]) == []
        assert await storage.tasks() == []

    async def test_failure_rolls_back_everything(self, storage):
        """第 k 条失败时，1..k 条均不可见"""
        existing = await storage.add_task(Task(title="existing"))

        with pytest.raises(ConstraintViolation):
            await storage.add_tasks(
                [Task(title="a"), Task(title="b"), Task(title=""), Task(title="d")]
            )

        assert [t.id for t in await storage.tasks()] == [existing]

    async def test_connection_reusable_after_rollback(self, storage):
        with pytest.raises(ConstraintViolation):
            await storage.add_tasks([Task(title="a"), Task(title="")])

        ids = await storage.add_tasks([Task(title="ok")])
        assert [t.id for t in await storage.tasks()] == ids

    async def test_rollback_logged(self, storage):
        from structlog.testing import capture_logs

        with capture_logs() as logs, pytest.raises(ConstraintViolation):
            await storage.add_tasks([Task(title="a"), Task(title="")])

        rolled_back = [e for e in logs if e["event"] == "tasks_add_rolled_back"]
        assert rolled_back == [
            {
                "event": "tasks_add_rolled_back",
                "requested": 2,
                "inserted_before_failure": 1,
                "error_type": "IntegrityError",
                "log_level": "warning",
            }
        ]


class TestAddTasksBatch:
    """批量插入测试"""

    async def test_batch_inserts_all(self, storage):
        await storage.add_tasks_batch([Task(title=f"b{i}", content="x") for i in range(10)])

        tasks = await storage.tasks()
        assert [t.title for t in tasks] == [f"b{i}" for i in range(10)]
        assert all(t.content == "x" and t.closed == 0 for t in tasks)

    async def test_batch_ignores_non_insert_fields(self, storage):
        await storage.add_tasks_batch([Task(id=50, author_id=7, title="x")])
        (stored,) = await storage.tasks()
        assert stored.id != 50
        assert stored.author_id == 0

    async def test_batch_empty_input(self, storage):
        await storage.add_tasks_batch([])
        assert await storage.tasks() == []

    async def test_batch_failure_reported(self, storage):
        """失败时返回错误；失败行及之后的行不会写入

        没有外层事务，失败行之前已生效的行可能保留，这里不对其做断言。
        """
        with pytest.raises(EngineError):
            await storage.add_tasks_batch(
                [Task(title="ok-1"), Task(title="ok-2"), Task(title=""), Task(title="after")]
            )

        titles = [t.title for t in await storage.tasks()]
        assert "" not in titles
        assert "after" not in titles


class TestTransactionHelper:
    """transaction() 封装测试"""

    async def _count_users(self, storage) -> int:
        async with storage.pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM users")
            return (await cursor.fetchone())[0]

    async def test_commit(self, storage):
        async with storage.pool.acquire() as conn:
            async with transaction(conn):
                await conn.execute("INSERT INTO users (id, name) VALUES (1, 'alice')")
            assert not conn.in_transaction
        assert await self._count_users(storage) == 2

    async def test_rollback_on_error(self, storage):
        async with storage.pool.acquire() as conn:
            with pytest.raises(ValueError):
                async with transaction(conn):
                    await conn.execute("INSERT INTO users (id, name) VALUES (1, 'alice')")
                    raise ValueError("abort")
            assert not conn.in_transaction
        assert await self._count_users(storage) == 1

    async def test_rollback_on_cancel(self, storage):
        """取消同样触发回滚，CancelledError 原样抛出"""
        async with storage.pool.acquire() as conn:
            with pytest.raises(asyncio.CancelledError):
                async with transaction(conn):
                    await conn.execute("INSERT INTO users (id, name) VALUES (1, 'alice')")
                    raise asyncio.CancelledError()
            assert not conn.in_transaction
        assert await self._count_users(storage) == 1

    async def test_add_tasks_cancelled_leaves_nothing(self, storage, monkeypatch):
        """add_tasks 所在任务在第一条插入后被取消，事务回滚"""
        inserted = asyncio.Event()
        never = asyncio.Event()

        # 连接池为 LIFO，add_tasks 会借到同一个空闲连接
        async with storage.pool.acquire() as conn:
            original_execute = conn.execute

        async def stalled_execute(sql, parameters=None):
            cursor = await original_execute(sql, parameters)
            if sql.startswith("INSERT INTO tasks"):
                inserted.set()
                await never.wait()
            return cursor

        monkeypatch.setattr(conn, "execute", stalled_execute)

        pending = asyncio.create_task(storage.add_tasks([Task(title="a"), Task(title="b")]))
        await inserted.wait()
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        monkeypatch.undo()
        assert not conn.in_transaction
        assert await storage.tasks() == []
