"""
报表相关数据模型
所有报表只统计已送达（delivered）的订单
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .base import Money


class SalesRow(BaseModel):
    """按周期汇总的销售数据"""
    period: date = Field(..., description="周期起始日期")
    total_sales: Money
    order_count: int
    items_sold: int


class BestSeller(BaseModel):
    menu_item_id: str
    menu_name: str
    category: Optional[str] = None
    total_sold: int
    total_revenue: Money


class CustomerSpend(BaseModel):
    user_id: str
    email: Optional[str] = None
    order_count: int
    total_spent: Money


class SalesAnalytics(BaseModel):
    total_revenue: Money
    total_orders: int
    total_items: int
    average_order_value: Money
    top_category: Optional[str] = None
    start_date: date
    end_date: date


class CustomerInsights(BaseModel):
    unique_customers: int
    repeat_customers: int
    average_orders_per_customer: float
    top_customers: List[CustomerSpend] = Field(default_factory=list)


class OrderTrends(BaseModel):
    hourly_distribution: Dict[int, int] = Field(default_factory=dict)


class RevenueGrowth(BaseModel):
    current_revenue: Money
    previous_revenue: Money
    growth_percentage: float
