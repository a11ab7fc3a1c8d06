"""
用户管理路由模块
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_pagination, get_services
from ...core.error_handler import create_paginated_response, create_success_response
from ...core.security import get_current_principal, require_admin
from ...models.base import PaginationParams
from ...models.user import Principal, Role
from ...schemas.user import ChangePasswordRequest, UpdateProfileRequest
from ...services import ServiceRegistry

router = APIRouter()


@router.get("/me")
def get_my_profile(
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """获取当前用户资料"""
    return create_success_response(services.users.get_profile(principal.user_id))


@router.put("/me")
def update_my_profile(
    req: UpdateProfileRequest,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """更新当前用户资料"""
    return create_success_response(services.users.update_profile(principal.user_id, req.email))


@router.post("/me/change-password")
def change_password(
    req: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """修改密码"""
    services.users.change_password(principal.user_id, req.current_password, req.new_password)
    return create_success_response({"changed": True})


@router.get("")
def list_users(
    role: Optional[Role] = Query(None, description="按角色过滤"),
    page: PaginationParams = Depends(get_pagination),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """按角色列出用户（管理员）"""
    users, total = services.users.list_users_by_role(role, page.offset, page.limit)
    return create_paginated_response(users, total, page.offset, page.limit)
