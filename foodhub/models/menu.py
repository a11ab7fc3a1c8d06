"""
菜品相关数据模型
"""

from typing import Optional

from pydantic import Field

from .base import BaseEntity, Money, TimestampMixin


class MenuItem(BaseEntity, TimestampMixin):
    """菜品完整模型"""
    id: str = Field(..., description="菜品ID")
    name: str = Field(..., description="名称")
    description: Optional[str] = Field(None, description="描述")
    price: Money = Field(..., description="单价")
    category: str = Field(..., description="分类")
    stock: int = Field(0, ge=0, description="库存")
    image_url: Optional[str] = Field(None, description="图片URL")
    is_active: bool = Field(True, description="是否上架")

    def is_in_stock(self, quantity: int) -> bool:
        """上架且库存足够时才可下单"""
        return self.is_active and self.stock >= quantity
