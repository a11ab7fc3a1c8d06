"""
路由公共依赖
服务实例挂在 app.state 上，通过依赖注入获取，测试可以替换为内存数据库
"""

from typing import Optional

from fastapi import Query, Request

from ..config.settings import Settings
from ..models.base import PaginationParams
from ..services import ServiceRegistry


def get_services(request: Request) -> ServiceRegistry:
    return request.app.state.services


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pagination(
    request: Request,
    offset: int = Query(0, ge=0, description="偏移量"),
    limit: Optional[int] = Query(None, ge=1, description="每页数量"),
) -> PaginationParams:
    """偏移分页参数，limit 缺省取配置值并截断到最大值"""
    settings: Settings = request.app.state.settings
    if limit is None:
        limit = settings.default_page_size
    return PaginationParams(offset=offset, limit=min(limit, settings.max_page_size))
