"""taskboard 测试配置 -- 临时 SQLite 数据库 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from taskboard.core.store import SqliteTaskStorage, create_task_storage


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def dsn(tmp_db_path: Path) -> str:
    """指向临时数据库文件的 DSN（绝对路径）"""
    return f"sqlite:///{tmp_db_path}"


@pytest_asyncio.fixture
async def storage(dsn: str) -> AsyncGenerator[SqliteTaskStorage, None]:
    """提供已初始化 schema 的 TaskStorage"""
    store = await create_task_storage(dsn, init_schema=True)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def seed_users(storage: SqliteTaskStorage) -> list[int]:
    """写入测试用户 1/2/5（用户 0 由 init_db 写入）"""
    async with storage.pool.acquire() as conn:
        await conn.executemany(
            "INSERT INTO users (id, name) VALUES (?, ?)",
            [(1, "alice"), (2, "bob"), (5, "eve")],
        )
    return [1, 2, 5]
