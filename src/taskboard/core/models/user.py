"""User Domain Model -- 只读，本层不提供写操作"""

from pydantic import BaseModel, Field


class User(BaseModel):
    """用户"""

    id: int = Field(description="用户 ID")
    name: str = Field(description="显示名称")
