"""
统一错误处理模块
提供标准化的响应信封和错误处理中间件

主要功能：
- 统一的响应格式 {code, status, data|error}
- 自动异常捕获和日志记录
- 错误代码到 HTTP 状态码映射
"""

import json
import traceback
from decimal import Decimal
from http import HTTPStatus
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .exceptions import BaseApplicationError
from .logging import get_logger
from ..schemas.common import PaginationInfo

logger = get_logger(__name__)


def _phrase(http_status: int) -> str:
    try:
        return HTTPStatus(http_status).phrase
    except ValueError:
        return "Unknown"


class ErrorResponse:
    """标准错误响应格式"""

    def __init__(self, error_code: str, message: str,
                 details: Optional[Dict[str, Any]] = None,
                 http_status: int = 400):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.http_status,
            "status": _phrase(self.http_status),
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            },
        }

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.http_status, content=self.to_dict())


class ErrorHandler:
    """全局错误处理器"""

    # 错误代码到HTTP状态码的映射
    ERROR_CODE_STATUS_MAP = {
        "INVALID_ARGUMENT": 400,
        "AUTHENTICATION_REQUIRED": 401,
        "FORBIDDEN": 403,
        "NOT_FOUND": 404,
        "OUT_OF_STOCK": 409,
        "INVALID_TRANSITION": 409,
        "CONFLICT": 409,
        "EMPTY_CART": 422,
        "VALIDATION_ERROR": 422,
        "INTERNAL": 500,
        "STORE_UNAVAILABLE": 503,
    }

    @classmethod
    def handle_application_error(cls, error: BaseApplicationError) -> ErrorResponse:
        """处理应用业务异常"""
        http_status = cls.ERROR_CODE_STATUS_MAP.get(error.error_code, 400)
        return ErrorResponse(
            error_code=error.error_code,
            message=error.message,
            details=error.details,
            http_status=http_status,
        )

    @classmethod
    def handle_http_exception(cls, error: HTTPException) -> ErrorResponse:
        """处理FastAPI HTTP异常（例如缺少 Bearer 头、路由不存在）"""
        code_by_status = {
            401: "AUTHENTICATION_REQUIRED",
            403: "FORBIDDEN",
            404: "NOT_FOUND",
        }
        status = error.status_code
        default_code = "INTERNAL" if status >= 500 else "INVALID_ARGUMENT"
        return ErrorResponse(
            error_code=code_by_status.get(status, default_code),
            message=str(error.detail),
            http_status=status,
        )

    @classmethod
    def handle_validation_error(cls, error: RequestValidationError) -> ErrorResponse:
        """处理请求参数验证错误"""
        errors = [
            {
                "field": ".".join(str(p) for p in e.get("loc", ())),
                "message": e.get("msg", ""),
            }
            for e in error.errors()
        ]
        return ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            details={"validation_errors": errors},
            http_status=422,
        )

    @classmethod
    def handle_unknown_error(cls, error: Exception, db=None) -> ErrorResponse:
        """处理未知异常"""
        error_details = {
            "type": type(error).__name__,
            "message": str(error),
            "traceback": traceback.format_exc(),
        }
        logger.error("unhandled_exception", error_type=error_details["type"],
                     error=error_details["message"], exc_info=error)
        if db is not None:
            cls._log_system_error(db, error_details)

        return ErrorResponse(
            error_code="INTERNAL",
            message="Internal server error",
            details={"error_type": type(error).__name__},
            http_status=500,
        )

    @classmethod
    def _log_system_error(cls, db, error_details: Dict[str, Any]):
        """记录系统错误到数据库审计表"""
        try:
            with db.transaction() as con:
                con.execute(
                    "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)",
                    [None, None, "system_error", json.dumps(error_details)],
                )
        except BaseApplicationError as e:
            # 审计表不可写时只保留结构化日志
            logger.warning("system_error_audit_failed", error=e.message)


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    """应用异常处理中间件"""
    error_response = ErrorHandler.handle_application_error(exc)
    if error_response.http_status >= 500:
        logger.error("application_error", path=request.url.path,
                     error_code=exc.error_code, error=exc.message, details=exc.details)
    else:
        logger.info("request_rejected", path=request.url.path,
                    error_code=exc.error_code, error=exc.message)
    return error_response.to_json_response()


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTP异常处理中间件"""
    return ErrorHandler.handle_http_exception(exc).to_json_response()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """验证异常处理中间件"""
    return ErrorHandler.handle_validation_error(exc).to_json_response()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """通用异常处理中间件"""
    db = getattr(request.app.state, "db", None)
    return ErrorHandler.handle_unknown_error(exc, db).to_json_response()


def _to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, Decimal):
        return f"{data:.2f}"
    if isinstance(data, list):
        return [_to_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: _to_jsonable(value) for key, value in data.items()}
    return data


def create_success_response(data: Any = None, http_status: int = 200) -> Dict[str, Any]:
    """创建标准成功响应"""
    return {
        "code": http_status,
        "status": _phrase(http_status),
        "data": _to_jsonable(data),
    }


def create_paginated_response(items: list, total: int, offset: int,
                              limit: int) -> Dict[str, Any]:
    """创建分页响应"""
    return create_success_response({
        "items": items,
        "pagination": PaginationInfo(
            offset=offset,
            limit=limit,
            total_count=total,
            has_more=offset + len(items) < total,
        ),
    })
