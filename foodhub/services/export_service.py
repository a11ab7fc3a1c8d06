"""
导出服务
把按日汇总的销售报表导出为 CSV 或 Excel（openpyxl）文件
"""

import io
from datetime import date
from typing import List

import pandas as pd

from ..core.exceptions import InvalidArgumentError
from ..core.logging import get_logger
from ..models.report import SalesRow
from .report_service import ReportService

EXPORT_COLUMNS = ["Date", "TotalSales", "OrderCount", "ItemsSold"]

MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


class ExportService:
    """导出服务"""

    def __init__(self, report_service: ReportService, logger=None):
        self.report_service = report_service
        self.logger = logger or get_logger(__name__)

    def export_sales(self, start: date, end: date, fmt: str = "csv") -> bytes:
        """导出区间内每日销售数据"""
        fmt = (fmt or "csv").lower()
        if fmt not in MEDIA_TYPES:
            raise InvalidArgumentError("format must be csv or xlsx", details={"format": fmt})

        rows = self.report_service.sales_report(start, end, "day")
        frame = self._to_frame(rows)
        self.logger.info("sales_exported", format=fmt, rows=len(frame),
                         start_date=str(start), end_date=str(end))

        if fmt == "csv":
            return frame.to_csv(index=False).encode("utf-8")

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name="Sales", index=False)
        buffer.seek(0)
        return buffer.getvalue()

    @staticmethod
    def _to_frame(rows: List[SalesRow]) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "Date": row.period.isoformat(),
                    # 金额保持两位小数的字符串，避免转成浮点数
                    "TotalSales": f"{row.total_sales:.2f}",
                    "OrderCount": row.order_count,
                    "ItemsSold": row.items_sold,
                }
                for row in rows
            ],
            columns=EXPORT_COLUMNS,
        )
