"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引 + 默认用户。仅负责在空库上建出最小 schema，不做版本迁移。
"""

import aiosqlite

_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id    INTEGER PRIMARY KEY,
    name  TEXT NOT NULL
);
"""

_LABELS_DDL = """
CREATE TABLE IF NOT EXISTS labels (
    id    INTEGER PRIMARY KEY,
    name  TEXT NOT NULL
);
"""

# opened 默认取插入时刻的 Unix 秒；closed/author_id/assigned_id 默认 0
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    opened       INTEGER NOT NULL DEFAULT (CAST(strftime('%s', 'now') AS INTEGER)),
    closed       INTEGER NOT NULL DEFAULT 0,
    author_id    INTEGER NOT NULL DEFAULT 0 REFERENCES users(id),
    assigned_id  INTEGER NOT NULL DEFAULT 0 REFERENCES users(id),
    title        TEXT NOT NULL CHECK (title <> ''),
    content      TEXT NOT NULL DEFAULT ''
);
"""

_TASKS_LABELS_DDL = """
CREATE TABLE IF NOT EXISTS tasks_labels (
    task_id   INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    label_id  INTEGER NOT NULL REFERENCES labels(id),

    PRIMARY KEY (task_id, label_id)
);
"""

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_author_id ON tasks(author_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_labels_label_id ON tasks_labels(label_id);",
]

# author_id/assigned_id 的默认值 0 需要指向一个真实存在的用户
_SEED_DEFAULT_USER = "INSERT OR IGNORE INTO users (id, name) VALUES (0, 'default');"


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：创建表 + 创建索引 + 写入默认用户

    可重复执行。连接需处于 autocommit 模式或由调用方提交。

    Args:
        conn: aiosqlite 数据库连接
    """
    # :memory: 数据库会返回 "memory"，不影响后续建表
    await conn.execute("PRAGMA journal_mode = WAL;")

    await conn.execute(_USERS_DDL)
    await conn.execute(_LABELS_DDL)
    await conn.execute(_TASKS_DDL)
    await conn.execute(_TASKS_LABELS_DDL)

    for idx_sql in _INDEXES:
        await conn.execute(idx_sql)

    await conn.execute(_SEED_DEFAULT_USER)
    await conn.commit()
