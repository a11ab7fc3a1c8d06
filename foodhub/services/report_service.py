"""
报表服务
只读地汇总已送达订单的销售数据

主要功能：
- 按日/月/年汇总销售额、订单数、售出份数
- 畅销菜品排行（并列时按菜品ID升序）
- 综合分析、分类销售、客户洞察、下单时段分布
- 环比增长率

日期范围按自然日闭区间处理：created_at >= start AND created_at < end + 1 天
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from ..core.database import DatabaseManager, fetch_dicts
from ..core.exceptions import InvalidArgumentError
from ..core.logging import get_logger
from ..models.base import quantize_money
from ..models.report import (
    BestSeller,
    CustomerInsights,
    CustomerSpend,
    OrderTrends,
    RevenueGrowth,
    SalesAnalytics,
    SalesRow,
)

ZERO = Decimal("0.00")

# group_by -> date_trunc 精度
_PERIODS = {"day": "day", "month": "month", "year": "year"}

_DELIVERED = "o.status = 'delivered' AND o.created_at >= ? AND o.created_at < ?"


def growth_percentage(current: Decimal, previous: Decimal) -> float:
    """环比增长率：上期为 0 时，本期为正返回 100.0，本期也为 0 返回 0.0"""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return float((current - previous) / previous * 100)


class ReportService:
    """报表服务"""

    def __init__(self, db: DatabaseManager, logger=None):
        self.db = db
        self.logger = logger or get_logger(__name__)

    @staticmethod
    def validate_range(start: Optional[date], end: Optional[date]) -> Tuple[date, date]:
        if start is None or end is None:
            raise InvalidArgumentError("start_date and end_date are required")
        if start > end:
            raise InvalidArgumentError(
                "start_date must not be after end_date",
                details={"start_date": str(start), "end_date": str(end)},
            )
        return start, end

    def _bounds(self, start: date, end: date) -> list:
        self.validate_range(start, end)
        return [start, end + timedelta(days=1)]

    def sales_report(self, start: date, end: date, group_by: str = "day") -> List[SalesRow]:
        """按周期汇总销售额"""
        part = _PERIODS.get(group_by)
        if part is None:
            raise InvalidArgumentError(
                "group_by must be one of day, month, year", details={"group_by": group_by}
            )
        with self.db.snapshot() as con:
            rows = fetch_dicts(
                con,
                f"""
                WITH line_totals AS (
                    SELECT order_id, SUM(quantity) AS qty
                    FROM order_items
                    GROUP BY order_id
                )
                SELECT CAST(date_trunc('{part}', o.created_at) AS DATE) AS period,
                       SUM(o.total_amount) AS total_sales,
                       COUNT(*) AS order_count,
                       COALESCE(SUM(lt.qty), 0) AS items_sold
                FROM orders o
                LEFT JOIN line_totals lt ON lt.order_id = o.id
                WHERE {_DELIVERED}
                GROUP BY period
                ORDER BY period
                """,
                self._bounds(start, end),
            )
        return [SalesRow(**r) for r in rows]

    def daily(self, day: date) -> SalesRow:
        return self._single(day, day, "day", day)

    def monthly(self, year: int, month: int) -> SalesRow:
        if not 1 <= month <= 12:
            raise InvalidArgumentError("month must be between 1 and 12", details={"month": month})
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        return self._single(first, last, "month", first)

    def yearly(self, year: int) -> SalesRow:
        first = date(year, 1, 1)
        return self._single(first, date(year, 12, 31), "year", first)

    def _single(self, start: date, end: date, group_by: str, period: date) -> SalesRow:
        rows = self.sales_report(start, end, group_by)
        if rows:
            return rows[0]
        return SalesRow(period=period, total_sales=ZERO, order_count=0, items_sold=0)

    def best_sellers(self, start: date, end: date, limit: int = 5) -> List[BestSeller]:
        """按售出份数排行，并列时按菜品ID升序"""
        if limit < 1 or limit > 100:
            raise InvalidArgumentError("limit must be between 1 and 100", details={"limit": limit})
        with self.db.snapshot() as con:
            rows = fetch_dicts(
                con,
                f"""
                SELECT oi.menu_item_id,
                       COALESCE(MAX(m.name), MAX(oi.menu_name)) AS menu_name,
                       MAX(m.category) AS category,
                       SUM(oi.quantity) AS total_sold,
                       SUM(oi.price * oi.quantity) AS total_revenue
                FROM order_items oi
                JOIN orders o ON o.id = oi.order_id
                LEFT JOIN menu_items m ON m.id = oi.menu_item_id
                WHERE {_DELIVERED}
                GROUP BY oi.menu_item_id
                ORDER BY total_sold DESC, oi.menu_item_id ASC
                LIMIT ?
                """,
                self._bounds(start, end) + [limit],
            )
        return [BestSeller(**r) for r in rows]

    def category_sales(self, start: date, end: date) -> Dict[str, Decimal]:
        with self.db.snapshot() as con:
            rows = con.execute(
                f"""
                SELECT COALESCE(m.category, 'Uncategorized') AS category,
                       SUM(oi.price * oi.quantity) AS revenue
                FROM order_items oi
                JOIN orders o ON o.id = oi.order_id
                LEFT JOIN menu_items m ON m.id = oi.menu_item_id
                WHERE {_DELIVERED}
                GROUP BY 1
                ORDER BY revenue DESC, category
                """,
                self._bounds(start, end),
            ).fetchall()
        return {category: quantize_money(revenue) for category, revenue in rows}

    def analytics(self, start: date, end: date) -> SalesAnalytics:
        """区间内的综合销售指标"""
        with self.db.snapshot() as con:
            revenue, orders = con.execute(
                f"""
                SELECT COALESCE(SUM(o.total_amount), 0), COUNT(*)
                FROM orders o WHERE {_DELIVERED}
                """,
                self._bounds(start, end),
            ).fetchone()
            items = con.execute(
                f"""
                SELECT COALESCE(SUM(oi.quantity), 0)
                FROM order_items oi JOIN orders o ON o.id = oi.order_id
                WHERE {_DELIVERED}
                """,
                self._bounds(start, end),
            ).fetchone()[0]

        categories = self.category_sales(start, end)
        revenue = Decimal(revenue)
        average = quantize_money(revenue / orders) if orders else ZERO
        return SalesAnalytics(
            total_revenue=revenue,
            total_orders=orders,
            total_items=int(items),
            average_order_value=average,
            # category_sales 已按销售额倒序、分类名升序排列
            top_category=next(iter(categories), None),
            start_date=start,
            end_date=end,
        )

    def customer_insights(self, start: date, end: date) -> CustomerInsights:
        with self.db.snapshot() as con:
            rows = fetch_dicts(
                con,
                f"""
                SELECT o.user_id, u.email, COUNT(*) AS order_count,
                       SUM(o.total_amount) AS total_spent
                FROM orders o
                LEFT JOIN users u ON u.id = o.user_id
                WHERE {_DELIVERED}
                GROUP BY o.user_id, u.email
                ORDER BY total_spent DESC, o.user_id
                """,
                self._bounds(start, end),
            )
        customers = [CustomerSpend(**r) for r in rows]
        unique = len(customers)
        total_orders = sum(c.order_count for c in customers)
        return CustomerInsights(
            unique_customers=unique,
            repeat_customers=sum(1 for c in customers if c.order_count > 1),
            average_orders_per_customer=round(total_orders / unique, 2) if unique else 0.0,
            top_customers=customers[:5],
        )

    def order_trends(self, start: date, end: date) -> OrderTrends:
        with self.db.snapshot() as con:
            rows = con.execute(
                f"""
                SELECT hour(o.created_at) AS hour, COUNT(*)
                FROM orders o WHERE {_DELIVERED}
                GROUP BY 1 ORDER BY 1
                """,
                self._bounds(start, end),
            ).fetchall()
        return OrderTrends(hourly_distribution={int(h): int(c) for h, c in rows})

    def revenue(self, start: date, end: date) -> Decimal:
        with self.db.snapshot() as con:
            value = con.execute(
                f"SELECT COALESCE(SUM(o.total_amount), 0) FROM orders o WHERE {_DELIVERED}",
                self._bounds(start, end),
            ).fetchone()[0]
        return Decimal(value)

    def revenue_growth(self, current_start: date, current_end: date,
                       previous_start: date, previous_end: date) -> RevenueGrowth:
        current = self.revenue(current_start, current_end)
        previous = self.revenue(previous_start, previous_end)
        return RevenueGrowth(
            current_revenue=current,
            previous_revenue=previous,
            growth_percentage=growth_percentage(current, previous),
        )
