"""
销售报表路由模块（管理员）
所有报表只统计已送达订单，日期区间含首尾两天
"""

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ..deps import get_services
from ...core.error_handler import create_success_response
from ...core.security import require_admin
from ...models.user import Principal
from ...services import ServiceRegistry
from ...services.export_service import MEDIA_TYPES

router = APIRouter()


@router.get("/sales")
def sales_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    group_by: Literal["day", "month", "year"] = Query("day"),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """按日/月/年汇总销售额"""
    return create_success_response(services.reports.sales_report(start_date, end_date, group_by))


@router.get("/daily")
def daily_report(
    day: date = Query(..., alias="date"),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.reports.daily(day))


@router.get("/monthly")
def monthly_report(
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.reports.monthly(year, month))


@router.get("/yearly")
def yearly_report(
    year: int = Query(..., ge=1970, le=9999),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.reports.yearly(year))


@router.get("/bestsellers")
def best_sellers(
    start_date: date = Query(...),
    end_date: date = Query(...),
    limit: int = Query(5, ge=1, le=100),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """畅销菜品排行"""
    return create_success_response(services.reports.best_sellers(start_date, end_date, limit))


@router.get("/analytics")
def sales_analytics(
    start_date: date = Query(...),
    end_date: date = Query(...),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.reports.analytics(start_date, end_date))


@router.get("/categories")
def category_sales(
    start_date: date = Query(...),
    end_date: date = Query(...),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.reports.category_sales(start_date, end_date))


@router.get("/customers")
def customer_insights(
    start_date: date = Query(...),
    end_date: date = Query(...),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.reports.customer_insights(start_date, end_date))


@router.get("/trends")
def order_trends(
    start_date: date = Query(...),
    end_date: date = Query(...),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """下单时段分布"""
    return create_success_response(services.reports.order_trends(start_date, end_date))


@router.get("/growth")
def revenue_growth(
    current_start: date = Query(...),
    current_end: date = Query(...),
    previous_start: date = Query(...),
    previous_end: date = Query(...),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """环比增长率"""
    return create_success_response(
        services.reports.revenue_growth(current_start, current_end, previous_start, previous_end)
    )


@router.get("/export")
def export_sales(
    start_date: date = Query(...),
    end_date: date = Query(...),
    fmt: Literal["csv", "xlsx"] = Query("csv", alias="format"),
    admin: Principal = Depends(require_admin),
    services: ServiceRegistry = Depends(get_services),
):
    """导出每日销售数据为 CSV 或 Excel 文件"""
    content = services.exports.export_sales(start_date, end_date, fmt)
    filename = f"sales_{start_date.isoformat()}_{end_date.isoformat()}.{fmt}"
    return Response(
        content=content,
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
