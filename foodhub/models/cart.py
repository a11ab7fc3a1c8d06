"""
购物车相关数据模型
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, computed_field

from .base import BaseEntity, Money, TimestampMixin


class CartLine(BaseEntity, TimestampMixin):
    """购物车行，price 为加入时的价格快照"""
    id: str
    cart_id: str
    menu_item_id: str
    quantity: int = Field(..., gt=0)
    price: Money
    menu_name: Optional[str] = Field(None, description="当前菜品名称")
    current_price: Optional[Money] = Field(None, description="当前菜品价格")
    is_active: Optional[bool] = None
    stock: Optional[int] = None

    @computed_field
    @property
    def subtotal(self) -> Money:
        return self.price * self.quantity

    @computed_field
    @property
    def price_changed(self) -> bool:
        return self.current_price is not None and self.current_price != self.price


class Cart(BaseEntity, TimestampMixin):
    """购物车"""
    id: str
    user_id: str
    items: List[CartLine] = Field(default_factory=list)

    @computed_field
    @property
    def total(self) -> Money:
        return sum((line.subtotal for line in self.items), Decimal("0.00"))

    @computed_field
    @property
    def item_count(self) -> int:
        return len(self.items)
