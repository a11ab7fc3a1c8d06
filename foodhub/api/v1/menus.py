"""
菜品路由模块
浏览接口对所有登录用户开放，管理接口需要管理员权限
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..deps import get_pagination, get_services
from ...core.error_handler import create_paginated_response, create_success_response
from ...core.security import get_current_principal, require_admin
from ...models.base import PaginationParams
from ...models.user import Principal
from ...schemas.menu import AvailabilityRequest, MenuItemRequest, StockUpdateRequest
from ...services import ServiceRegistry

router = APIRouter()
admin_router = APIRouter()


@router.get("")
def list_menu_items(
    search: Optional[str] = Query(None, max_length=100, description="名称或描述关键字"),
    category: Optional[str] = Query(None, description="分类"),
    active_only: bool = Query(False, description="只看上架菜品"),
    page: PaginationParams = Depends(get_pagination),
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """分页查询菜品"""
    items, total = services.menus.list_items(page.offset, page.limit, search, category, active_only)
    return create_paginated_response(items, total, page.offset, page.limit)


@router.get("/categories")
def list_categories(
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.menus.get_categories())


@router.post("/availability")
def check_availability(
    req: AvailabilityRequest,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """批量检查菜品可用性"""
    return create_success_response(services.menus.check_availability(req.items))


@router.get("/{item_id}")
def get_menu_item(
    item_id: str,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.menus.get_item(item_id))


@admin_router.post("", status_code=status.HTTP_201_CREATED)
def create_menu_item(
    req: MenuItemRequest,
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """创建菜品（管理员）"""
    item = services.menus.create_item(admin.user_id, **req.model_dump())
    return create_success_response(item, 201)


@admin_router.put("/{item_id}")
def update_menu_item(
    item_id: str,
    req: MenuItemRequest,
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """整体更新菜品（管理员）"""
    return create_success_response(
        services.menus.update_item(admin.user_id, item_id, **req.model_dump())
    )


@admin_router.delete("/{item_id}")
def delete_menu_item(
    item_id: str,
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """删除菜品（管理员）"""
    services.menus.delete_item(admin.user_id, item_id)
    return create_success_response({"deleted": True, "id": item_id})


@admin_router.patch("/{item_id}/stock")
def set_menu_stock(
    item_id: str,
    req: StockUpdateRequest,
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.menus.set_stock(admin.user_id, item_id, req.stock))


@admin_router.patch("/{item_id}/toggle")
def toggle_menu_item(
    item_id: str,
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.menus.toggle_active(admin.user_id, item_id))
