"""
用户相关数据模型
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .base import BaseEntity, TimestampMixin


class Role(str, Enum):
    """用户角色"""
    ADMIN = "admin"
    CUSTOMER = "customer"


class User(BaseEntity, TimestampMixin):
    """用户完整模型（不包含密码哈希）"""
    id: str = Field(..., description="用户ID")
    email: str = Field(..., description="邮箱")
    role: Role = Field(Role.CUSTOMER, description="角色")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class Principal(BaseModel):
    """已认证的调用方，由认证依赖从 JWT 中解析一次"""
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
