"""
订单相关数据模型
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from .base import BaseEntity, Money, TimestampMixin


class OrderStatus(str, Enum):
    """订单状态枚举"""
    PENDING = "pending"         # 待确认
    CONFIRMED = "confirmed"     # 已确认
    PREPARING = "preparing"     # 制作中
    READY = "ready"             # 待取餐
    DELIVERED = "delivered"     # 已送达
    CANCELLED = "cancelled"     # 已取消

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    @property
    def can_be_cancelled(self) -> bool:
        return self in (OrderStatus.PENDING, OrderStatus.CONFIRMED)

    @property
    def can_be_updated(self) -> bool:
        return not self.is_terminal


class CheckoutPhase(str, Enum):
    """结算流程阶段"""
    VALIDATING = "validating"
    RESERVING_STOCK = "reserving_stock"
    PERSISTING_ORDER = "persisting_order"
    CLEARING_CART = "clearing_cart"
    DONE = "done"


class OrderLine(BaseEntity):
    """订单行，价格与名称均为下单时的快照"""
    id: str
    order_id: str
    menu_item_id: str
    quantity: int = Field(..., gt=0)
    price: Money
    menu_name: str
    created_at: Optional[datetime] = None

    @computed_field
    @property
    def subtotal(self) -> Money:
        return self.price * self.quantity


class Order(BaseEntity, TimestampMixin):
    """订单完整模型"""
    id: str = Field(..., description="订单ID")
    user_id: str = Field(..., description="用户ID")
    total_amount: Money = Field(..., description="订单总金额")
    status: OrderStatus = Field(OrderStatus.PENDING, description="订单状态")
    items: List[OrderLine] = Field(default_factory=list)


class CheckoutResult(BaseModel):
    """结算结果：订单以及非致命的后续警告（例如购物车清空失败）"""
    order: Order
    warnings: List[str] = Field(default_factory=list)
