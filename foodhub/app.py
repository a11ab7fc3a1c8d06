"""
FoodHub 点餐后端服务 - 主应用入口
提供菜品目录、购物车、结算下单和销售报表的完整后端API服务

主要功能模块：
- 邮箱注册登录与角色权限
- 菜品目录管理
- 购物车与结算
- 订单管理
- 销售报表与导出
- 操作日志记录

技术栈：FastAPI + DuckDB + JWT认证
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import api_router
from .config import Settings, load_settings
from .core.database import DatabaseManager
from .core.error_handler import (
    application_error_handler,
    create_success_response,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError
from .core.logging import configure_logging, get_logger
from .services import ServiceRegistry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    settings: Settings = app.state.settings
    db: DatabaseManager = app.state.db

    db.init_database()
    logger.info("database_initialized", path=db.db_path)

    if settings.seed_demo_data:
        app.state.services.seeder.seed()

    yield

    db.close()
    logger.info("database_closed")


def create_app(settings: Optional[Settings] = None,
               db: Optional[DatabaseManager] = None) -> FastAPI:
    """创建FastAPI应用，测试中可以注入配置和内存数据库"""
    settings = settings or load_settings(os.getenv("FOODHUB_ENV"))
    configure_logging(settings.log_level, settings.log_json)

    db = db or DatabaseManager(settings.database_url, settings.db_lock_timeout_seconds)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="FoodHub 点餐系统API",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = db
    app.state.services = ServiceRegistry(db, settings)
    app.state.security = app.state.services.security

    # 添加中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # 注册路由
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check(request: Request):
        request.app.state.db.execute_one("SELECT 1")
        return create_success_response({
            "status": "healthy",
            "version": settings.api_version,
            "database": "connected",
        })

    @app.get("/")
    async def root():
        return create_success_response({
            "name": settings.api_title,
            "version": settings.api_version,
            "description": "FoodHub 点餐系统API",
        })

    return app


# 应用实例
app = create_app()
