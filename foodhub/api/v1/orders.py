"""
订单路由模块
用户结算、查看和取消订单；管理员查看全部订单并修改状态
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..deps import get_pagination, get_services
from ...core.error_handler import create_paginated_response, create_success_response
from ...core.security import get_current_principal, require_admin
from ...models.base import PaginationParams
from ...models.order import OrderStatus
from ...models.user import Principal
from ...schemas.order import UpdateOrderStatusRequest
from ...services import ServiceRegistry

router = APIRouter()
admin_router = APIRouter()


@router.post("/checkout", status_code=status.HTTP_201_CREATED)
def checkout(
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """把购物车结算为订单"""
    return create_success_response(services.orders.checkout(principal.user_id), 201)


@router.get("")
def get_order_history(
    page: PaginationParams = Depends(get_pagination),
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """当前用户的订单历史"""
    orders, total = services.orders.get_history(principal.user_id, page.offset, page.limit)
    return create_paginated_response(orders, total, page.offset, page.limit)


@router.get("/{order_id}")
def get_order_details(
    order_id: str,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.orders.get_details(principal, order_id))


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: str,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """取消订单（仅待确认/已确认）"""
    return create_success_response(services.orders.cancel(principal.user_id, order_id))


@admin_router.get("")
def list_all_orders(
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="状态过滤"),
    page: PaginationParams = Depends(get_pagination),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """全部订单（管理员）"""
    orders, total = services.orders.list_all(page.offset, page.limit, order_status)
    return create_paginated_response(orders, total, page.offset, page.limit)


@admin_router.put("/{order_id}/status")
def update_order_status(
    order_id: str,
    req: UpdateOrderStatusRequest,
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """修改订单状态（管理员）"""
    return create_success_response(
        services.orders.update_status(admin.user_id, order_id, req.status)
    )


@admin_router.get("/by-date")
def list_orders_by_date(
    start_date: date = Query(..., description="开始日期（含）"),
    end_date: date = Query(..., description="结束日期（含）"),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """按创建日期查询订单（管理员）"""
    return create_success_response(services.orders.list_by_date_range(start_date, end_date))
