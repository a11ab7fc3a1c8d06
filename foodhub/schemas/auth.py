"""
认证相关的请求/响应模式
"""

from pydantic import BaseModel, EmailStr, Field

from ..models.user import Role, User


class RegisterRequest(BaseModel):
    """注册请求"""
    email: EmailStr = Field(description="邮箱")
    password: str = Field(min_length=1, max_length=128, description="密码")
    role: Role = Field(Role.CUSTOMER, description="角色")

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "customer@example.com",
                "password": "CustomerPassword123!",
            }
        }
    }


class LoginRequest(BaseModel):
    """登录请求"""
    email: EmailStr = Field(description="邮箱")
    password: str = Field(min_length=1, max_length=128, description="密码")


class TokenInfo(BaseModel):
    """Token信息"""
    token: str = Field(description="访问令牌")
    expires_in: int = Field(description="过期时间(秒)")
    token_type: str = Field(default="Bearer", description="令牌类型")


class AuthResponse(BaseModel):
    """注册/登录响应"""
    user: User
    token: TokenInfo
