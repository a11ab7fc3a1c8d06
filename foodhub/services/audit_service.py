"""
审计日志服务
所有改变状态的业务流程都在自己的事务内写入一条 logs 记录
"""

import json
from typing import Any, Dict, Optional

from ..core.database import DatabaseManager, fetch_dicts
from ..core.logging import get_logger


class AuditService:
    """审计日志的写入与查询"""

    def __init__(self, db: DatabaseManager, logger=None):
        self.db = db
        self.logger = logger or get_logger(__name__)

    @staticmethod
    def record(con, action: str, user_id: Optional[str] = None,
               actor_id: Optional[str] = None,
               detail: Optional[Dict[str, Any]] = None) -> None:
        """在调用方的事务中写入审计记录"""
        con.execute(
            "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)",
            [user_id, actor_id, action, json.dumps(detail or {}, default=str)],
        )

    def list_for_user(self, user_id: str, cursor: Optional[int] = None,
                      limit: int = 20) -> Dict[str, Any]:
        """当前用户作为对象或执行人的日志，按 log_id 倒序游标分页"""
        where = "(user_id = ? OR actor_id = ?)"
        params: list = [user_id, user_id]
        return self._page(where, params, cursor, limit)

    def list_all(self, cursor: Optional[int] = None, limit: int = 20,
                 action: Optional[str] = None) -> Dict[str, Any]:
        """系统全部日志（管理员）"""
        where = "1=1"
        params: list = []
        if action:
            where += " AND action = ?"
            params.append(action)
        return self._page(where, params, cursor, limit)

    def _page(self, where: str, params: list, cursor: Optional[int],
              limit: int) -> Dict[str, Any]:
        if cursor is not None:
            where += " AND log_id < ?"
            params.append(cursor)

        with self.db.snapshot() as con:
            rows = fetch_dicts(
                con,
                f"""
                SELECT log_id, user_id, actor_id, action, detail_json, created_at
                FROM logs
                WHERE {where}
                ORDER BY log_id DESC
                LIMIT ?
                """,
                params + [limit + 1],
            )

        has_more = len(rows) > limit
        rows = rows[:limit]
        for row in rows:
            detail = row.get("detail_json")
            if isinstance(detail, str):
                row["detail_json"] = json.loads(detail) if detail else {}

        return {
            "items": rows,
            "next_cursor": rows[-1]["log_id"] if has_more and rows else None,
            "has_more": has_more,
        }
