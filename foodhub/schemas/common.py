from pydantic import BaseModel, Field


class PaginationInfo(BaseModel):
    """分页信息"""
    limit: int = Field(description="每页数量")
    offset: int = Field(description="偏移量")
    total_count: int = Field(description="总记录数")
    has_more: bool = Field(description="是否有更多数据")
