"""
用户相关的请求/响应模式
"""

from pydantic import BaseModel, EmailStr, Field


class UpdateProfileRequest(BaseModel):
    """更新个人资料请求"""
    email: EmailStr = Field(description="新邮箱")


class ChangePasswordRequest(BaseModel):
    """修改密码请求"""
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=128)
