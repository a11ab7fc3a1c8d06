"""
日志管理路由模块
按 log_id 倒序游标分页
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_services
from ...core.error_handler import create_success_response
from ...core.security import get_current_principal, require_admin
from ...models.user import Principal
from ...services import ServiceRegistry

router = APIRouter()
admin_router = APIRouter()


@router.get("/me")
def get_my_logs(
    cursor: Optional[int] = Query(None, description="上一页最后一条的 log_id"),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """获取当前用户相关的日志"""
    return create_success_response(services.audit.list_for_user(principal.user_id, cursor, limit))


@admin_router.get("")
def get_all_logs(
    cursor: Optional[int] = Query(None, description="上一页最后一条的 log_id"),
    limit: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="按动作过滤"),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """获取系统所有日志（管理员）"""
    return create_success_response(services.audit.list_all(cursor, limit, action))
