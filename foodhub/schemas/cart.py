"""
购物车相关的请求模式
"""

from pydantic import BaseModel, Field


class AddCartItemRequest(BaseModel):
    """加入购物车"""
    menu_item_id: str = Field(..., min_length=1, description="菜品ID")
    quantity: int = Field(..., description="数量，必须为正整数")


class UpdateCartItemRequest(BaseModel):
    """修改数量，<= 0 表示删除"""
    quantity: int = Field(..., description="新数量")
