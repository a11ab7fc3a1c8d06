"""
菜品相关的请求/响应模式
"""

from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, Field


class MenuItemRequest(BaseModel):
    """创建或整体更新菜品"""
    name: str = Field(..., min_length=2, max_length=255, description="名称")
    description: Optional[str] = Field(None, max_length=2000, description="描述")
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="单价")
    category: str = Field(..., min_length=2, max_length=100, description="分类")
    stock: int = Field(0, ge=0, description="库存")
    image_url: Optional[str] = Field(None, max_length=1000, description="图片URL")
    is_active: bool = Field(True, description="是否上架")

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Classic Burger",
                "price": "12.99",
                "category": "Burgers",
                "stock": 100,
            }
        }
    }


class StockUpdateRequest(BaseModel):
    stock: int = Field(..., ge=0, description="新库存")


class AvailabilityRequest(BaseModel):
    """批量可用性检查：菜品ID -> 数量"""
    items: Dict[str, int] = Field(..., description="菜品ID到需求数量的映射")
