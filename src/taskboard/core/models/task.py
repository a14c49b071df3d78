"""Task Domain Model

tasks 表中的一行的内存快照。ID 由存储层在插入时分配，之后不可变。
时间戳以 Unix 秒整数存储，closed == 0 表示任务仍处于打开状态。
"""

from pydantic import BaseModel, Field


class Task(BaseModel):
    """Task 数据模型

    与存储之间没有反向引用：修改实例不会影响数据库，
    需要显式调用 TaskStorage.update_task() 才会持久化。
    """

    id: int = Field(default=0, description="任务 ID，由存储层在创建时分配")
    opened: int = Field(default=0, description="创建时间（Unix 秒）")
    closed: int = Field(default=0, description="关闭时间（Unix 秒），0 表示未关闭")
    author_id: int = Field(default=0, description="作者 users.id")
    assigned_id: int = Field(default=0, description="负责人 users.id，0 表示未分配")
    title: str = Field(description="任务标题（非空约束由数据库保证）")
    content: str = Field(default="", description="任务正文")

    @property
    def is_open(self) -> bool:
        return self.closed == 0
