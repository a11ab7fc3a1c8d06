"""
认证路由模块
邮箱注册与登录，返回用户信息和 JWT
"""

from fastapi import APIRouter, Depends, status

from ..deps import get_services
from ...core.error_handler import create_success_response
from ...schemas.auth import AuthResponse, LoginRequest, RegisterRequest, TokenInfo
from ...services import ServiceRegistry

router = APIRouter()


def _auth_payload(services: ServiceRegistry, user, token: str) -> AuthResponse:
    return AuthResponse(
        user=user,
        token=TokenInfo(token=token, expires_in=services.settings.jwt_expire_hours * 3600),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(req: RegisterRequest, services: ServiceRegistry = Depends(get_services)):
    """注册新用户"""
    user, token = services.users.register(req.email, req.password, req.role)
    return create_success_response(_auth_payload(services, user, token), 201)


@router.post("/login")
def login(req: LoginRequest, services: ServiceRegistry = Depends(get_services)):
    """邮箱密码登录"""
    user, token = services.users.login(req.email, req.password)
    return create_success_response(_auth_payload(services, user, token))
