"""
自定义异常类
提供更精确的错误处理和异常信息

每个异常类携带固定的 error_code，由 error_handler 映射为 HTTP 状态码。
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """应用基础异常类"""

    default_code = "INTERNAL"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidArgumentError(BaseApplicationError):
    """输入参数形状或取值非法"""
    default_code = "INVALID_ARGUMENT"


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""
    default_code = "AUTHENTICATION_REQUIRED"


class ForbiddenError(BaseApplicationError):
    """归属或角色校验失败"""
    default_code = "FORBIDDEN"


class NotFoundError(BaseApplicationError):
    """实体不存在"""
    default_code = "NOT_FOUND"

    def __init__(self, entity: str, identifier: Any = None):
        details = {"identifier": str(identifier)} if identifier is not None else {}
        super().__init__(f"{entity} not found", details=details)


class OutOfStockError(BaseApplicationError):
    """库存不足或菜品已下架"""
    default_code = "OUT_OF_STOCK"


class EmptyCartError(BaseApplicationError):
    """购物车为空，无法结算"""
    default_code = "EMPTY_CART"

    def __init__(self, message: str = "cart is empty"):
        super().__init__(message)


class InvalidTransitionError(BaseApplicationError):
    """订单状态流转非法"""
    default_code = "INVALID_TRANSITION"


class ConflictError(BaseApplicationError):
    """并发冲突或唯一性冲突"""
    default_code = "CONFLICT"


class StoreUnavailableError(BaseApplicationError):
    """底层存储失败"""
    default_code = "STORE_UNAVAILABLE"


class InternalError(BaseApplicationError):
    """未预期的内部错误"""
    default_code = "INTERNAL"


class RollbackFailedError(InternalError):
    """事务回滚本身失败，需要人工对账"""
    pass
