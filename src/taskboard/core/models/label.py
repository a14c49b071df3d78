"""Label Domain Model

与 Task 的多对多关系由数据库 tasks_labels 表维护，不在内存中建模。
"""

from pydantic import BaseModel, Field


class Label(BaseModel):
    """标签"""

    id: int = Field(description="标签 ID")
    name: str = Field(description="显示名称")
