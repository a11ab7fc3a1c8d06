"""
基础数据模型
定义通用的模型基类、金额类型和分页参数
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, Field, PlainSerializer

CENTS = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """按分四舍五入（ROUND_HALF_UP）"""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


# 金额：内部始终是 Decimal，JSON 输出为两位小数的字符串
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: f"{quantize_money(v):.2f}", return_type=str, when_used="json"),
]


class TimestampMixin(BaseModel):
    """时间戳混入类"""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BaseEntity(BaseModel):
    """基础实体模型"""

    model_config = {"from_attributes": True, "use_enum_values": True}


class PaginationParams(BaseModel):
    """偏移分页参数"""
    offset: int = Field(default=0, ge=0, description="偏移量")
    limit: int = Field(default=10, ge=1, description="每页数量")
