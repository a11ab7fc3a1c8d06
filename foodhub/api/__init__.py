"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import auth, cart, logs, menus, orders, reports, users

api_router = APIRouter()

# 包含所有v1路由
api_router.include_router(auth.router, prefix="/auth", tags=["认证"])
api_router.include_router(users.router, prefix="/users", tags=["用户"])
api_router.include_router(menus.router, prefix="/menus", tags=["菜品"])
api_router.include_router(menus.admin_router, prefix="/admin/menus", tags=["菜品管理"])
api_router.include_router(cart.router, prefix="/cart", tags=["购物车"])
api_router.include_router(orders.router, prefix="/orders", tags=["订单"])
api_router.include_router(orders.admin_router, prefix="/admin/orders", tags=["订单管理"])
api_router.include_router(reports.router, prefix="/reports", tags=["报表"])
api_router.include_router(logs.router, prefix="/logs", tags=["日志"])
api_router.include_router(logs.admin_router, prefix="/admin/logs", tags=["日志管理"])
