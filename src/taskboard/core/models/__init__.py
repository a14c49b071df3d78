"""taskboard Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .label import Label
from .task import Task
from .user import User

__all__ = [
    "Task",
    "User",
    "Label",
]
