"""存储层异常体系

本包只定义自身产生的错误（未找到、连接池/DSN 问题）。
数据库引擎抛出的错误原样透传，不做包装、不重试：
ConstraintViolation 与 EngineError 只是驱动异常的别名，方便调用方按类别捕获。
"""

import aiosqlite

# 引擎拒绝写入（外键、CHECK、唯一约束等）
ConstraintViolation = aiosqlite.IntegrityError

# 其余所有驱动级错误的基类
EngineError = aiosqlite.Error


class StorageError(Exception):
    """存储包基础异常"""


class TaskNotFoundError(StorageError, LookupError):
    """单行查询没有匹配的任务"""

    def __init__(self, task_id: int) -> None:
        """
        Args:
            task_id: 查询的任务 ID
        """
        super().__init__(f"task not found: id={task_id}")
        self.task_id = task_id


class ConnectivityError(StorageError):
    """连接池或连接无法建立/使用"""


class InvalidDSNError(ConnectivityError, ValueError):
    """连接字符串格式错误，连接池无法构建"""

    def __init__(self, dsn: str, reason: str) -> None:
        super().__init__(f"invalid dsn {dsn!r}: {reason}")
        self.dsn = dsn
        self.reason = reason


class PoolClosedError(ConnectivityError):
    """连接池已关闭"""

    def __init__(self) -> None:
        super().__init__("connection pool is closed")
