"""Store Protocol 接口定义

定义 TaskStorage 的抽象接口，使用 Python Protocol 实现结构化子类型（duck typing）。
任何存储后端（SQLite、其他关系库、内存实现）只需提供同名协程即可替换，调用方无需改动。
"""

from typing import Protocol

from ..models.task import Task


class TaskStorage(Protocol):
    """Task 存储接口

    三种插入策略的原子性不同，实现时不得合并：
    - add_task: 单条插入
    - add_tasks: 单事务逐条插入，全部成功或全部回滚
    - add_tasks_batch: 驱动级批量插入，不保证回滚已生效的行

    插入操作只使用 Task.title 与 Task.content，其余字段取数据库默认值。
    """

    async def tasks(self) -> list[Task]:
        """全部任务，按 id 升序；无数据时返回空列表"""
        ...

    async def task_by_id(self, task_id: int) -> Task:
        """根据 id 查询任务

        Raises:
            TaskNotFoundError: 不存在该 id
        """
        ...

    async def tasks_by_author(self, author_id: int) -> list[Task]:
        """指定作者的任务，按 id 升序"""
        ...

    async def tasks_by_label(self, label_id: int) -> list[Task]:
        """关联了指定标签的任务，按 id 升序"""
        ...

    async def add_task(self, task: Task) -> int:
        """创建任务，返回新 id"""
        ...

    async def add_tasks(self, tasks: list[Task]) -> list[int]:
        """在单个事务内创建多个任务，返回与输入同序的新 id 列表"""
        ...

    async def add_tasks_batch(self, tasks: list[Task]) -> None:
        """批量创建任务；失败时抛出首个错误，已写入的行可能保留"""
        ...

    async def update_task(self, task: Task) -> None:
        """按 task.id 整行替换 opened/closed/author_id/assigned_id/title/content"""
        ...

    async def delete_task(self, task_id: int) -> None:
        """按 id 删除任务"""
        ...
