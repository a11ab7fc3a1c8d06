"""
订单相关的请求/响应模式
"""

from pydantic import BaseModel, Field

from ..models.order import OrderStatus


class UpdateOrderStatusRequest(BaseModel):
    """管理员修改订单状态"""
    status: OrderStatus = Field(..., description="目标状态")
