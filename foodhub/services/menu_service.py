"""
菜品服务模块
提供菜品目录的核心业务逻辑

主要功能：
- 菜品创建、查询、更新、删除
- 库存设置与上下架切换
- 批量可用性检查
- 结算时的条件扣减库存（reserve_stock）

业务规则：
- 库存永远不小于 0（数据库 CHECK 约束 + 条件更新双重保证）
- 被订单行引用的菜品不可删除；购物车行随菜品一起删除
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from ..core.database import DatabaseManager, fetch_dict, fetch_dicts
from ..core.exceptions import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    OutOfStockError,
)
from ..core.logging import get_logger
from ..models.menu import MenuItem
from .audit_service import AuditService

_MENU_COLUMNS = (
    "id, name, description, price, category, stock, image_url, is_active, "
    "created_at, updated_at"
)


class MenuService:
    """菜品服务类，封装所有菜品目录相关的业务逻辑"""

    def __init__(self, db: DatabaseManager, logger=None):
        self.db = db
        self.logger = logger or get_logger(__name__)

    def create_item(self, actor_id: str, name: str, price: Decimal, category: str,
                    stock: int = 0, description: Optional[str] = None,
                    image_url: Optional[str] = None, is_active: bool = True) -> MenuItem:
        self._validate_fields(price, stock)
        item_id = str(uuid.uuid4())
        with self.db.transaction() as con:
            con.execute(
                """
                INSERT INTO menu_items(id, name, description, price, category, stock,
                                       image_url, is_active)
                VALUES (?,?,?,?,?,?,?,?)
                """,
                [item_id, name, description, Decimal(price), category, stock,
                 image_url, is_active],
            )
            AuditService.record(con, "menu_create", None, actor_id,
                                {"menu_item_id": item_id, "name": name, "price": price})
            item = self.load_item(con, item_id)
        self.logger.info("menu_item_created", menu_item_id=item_id, actor_id=actor_id)
        return item

    def get_item(self, item_id: str) -> MenuItem:
        with self.db.snapshot() as con:
            return self.load_item(con, item_id)

    def list_items(self, offset: int = 0, limit: int = 10, search: Optional[str] = None,
                   category: Optional[str] = None,
                   active_only: bool = False) -> Tuple[List[MenuItem], int]:
        """分页查询菜品，search 对名称和描述做大小写不敏感匹配"""
        conditions, params = [], []
        if search:
            conditions.append("(name ILIKE ? OR COALESCE(description, '') ILIKE ?)")
            pattern = f"%{search}%"
            params.extend([pattern, pattern])
        if category:
            conditions.append("category = ?")
            params.append(category)
        if active_only:
            conditions.append("is_active")
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        with self.db.snapshot() as con:
            total = con.execute(f"SELECT COUNT(*) FROM menu_items {where}", params).fetchone()[0]
            rows = fetch_dicts(
                con,
                f"SELECT {_MENU_COLUMNS} FROM menu_items {where} ORDER BY name, id LIMIT ? OFFSET ?",
                params + [limit, offset],
            )
        return [MenuItem(**r) for r in rows], total

    def update_item(self, actor_id: str, item_id: str, name: str, price: Decimal,
                    category: str, stock: int, description: Optional[str] = None,
                    image_url: Optional[str] = None, is_active: bool = True) -> MenuItem:
        """整体替换可编辑字段"""
        self._validate_fields(price, stock)
        with self.db.transaction() as con:
            before = self.load_item(con, item_id)
            con.execute(
                """
                UPDATE menu_items
                SET name = ?, description = ?, price = ?, category = ?, stock = ?,
                    image_url = ?, is_active = ?, updated_at = ?
                WHERE id = ?
                """,
                [name, description, Decimal(price), category, stock, image_url,
                 is_active, datetime.now(), item_id],
            )
            AuditService.record(con, "menu_update", None, actor_id, {
                "menu_item_id": item_id,
                "old_price": before.price,
                "new_price": price,
            })
            return self.load_item(con, item_id)

    def delete_item(self, actor_id: str, item_id: str) -> None:
        """删除菜品：被订单引用时拒绝，购物车行一并删除"""
        with self.db.transaction() as con:
            self.load_item(con, item_id)
            referenced = con.execute(
                "SELECT COUNT(*) FROM order_items WHERE menu_item_id = ?", [item_id]
            ).fetchone()[0]
            if referenced:
                raise ConflictError(
                    "Menu item is referenced by existing orders",
                    details={"menu_item_id": item_id, "order_lines": referenced},
                )
            con.execute("DELETE FROM cart_items WHERE menu_item_id = ?", [item_id])
            con.execute("DELETE FROM menu_items WHERE id = ?", [item_id])
            AuditService.record(con, "menu_delete", None, actor_id, {"menu_item_id": item_id})
        self.logger.info("menu_item_deleted", menu_item_id=item_id, actor_id=actor_id)

    def set_stock(self, actor_id: str, item_id: str, stock: int) -> MenuItem:
        if stock < 0:
            raise InvalidArgumentError("stock must be >= 0", details={"stock": stock})
        with self.db.transaction() as con:
            before = self.load_item(con, item_id)
            con.execute(
                "UPDATE menu_items SET stock = ?, updated_at = ? WHERE id = ?",
                [stock, datetime.now(), item_id],
            )
            AuditService.record(con, "menu_set_stock", None, actor_id, {
                "menu_item_id": item_id, "old_stock": before.stock, "new_stock": stock,
            })
            return self.load_item(con, item_id)

    def toggle_active(self, actor_id: str, item_id: str) -> MenuItem:
        with self.db.transaction() as con:
            before = self.load_item(con, item_id)
            con.execute(
                "UPDATE menu_items SET is_active = ?, updated_at = ? WHERE id = ?",
                [not before.is_active, datetime.now(), item_id],
            )
            AuditService.record(con, "menu_toggle_active", None, actor_id, {
                "menu_item_id": item_id, "is_active": not before.is_active,
            })
            return self.load_item(con, item_id)

    def get_categories(self) -> List[str]:
        with self.db.snapshot() as con:
            rows = con.execute(
                "SELECT DISTINCT category FROM menu_items ORDER BY category"
            ).fetchall()
        return [r[0] for r in rows]

    def check_availability(self, requested: Dict[str, int]) -> Dict[str, bool]:
        """批量检查可用性，不存在的菜品返回 False"""
        if not requested:
            return {}
        ids = list(requested)
        placeholders = ",".join("?" for _ in ids)
        with self.db.snapshot() as con:
            rows = fetch_dicts(
                con,
                f"SELECT {_MENU_COLUMNS} FROM menu_items WHERE id IN ({placeholders})",
                ids,
            )
        items = {r["id"]: MenuItem(**r) for r in rows}
        return {
            item_id: item_id in items and items[item_id].is_in_stock(qty)
            for item_id, qty in requested.items()
        }

    def reserve_stock(self, con, quantities: Dict[str, int]) -> None:
        """
        在调用方事务中条件扣减库存

        每个菜品执行一次 UPDATE ... WHERE stock >= ?，返回空结果即说明库存已被抢走。
        失败时直接抛出，由调用方的事务回滚恢复之前已扣减的菜品。

        Raises:
            OutOfStockError: 任一菜品库存不足或已下架
        """
        for item_id, quantity in sorted(quantities.items()):
            row = con.execute(
                """
                UPDATE menu_items
                SET stock = stock - ?, updated_at = ?
                WHERE id = ? AND is_active AND stock >= ?
                RETURNING id
                """,
                [quantity, datetime.now(), item_id, quantity],
            ).fetchone()
            if row is None:
                raise OutOfStockError(
                    f"Insufficient stock for menu item {item_id}",
                    details={"menu_item_ids": [item_id], "requested": quantity},
                )

    def load_item(self, con, item_id: str) -> MenuItem:
        row = fetch_dict(con, f"SELECT {_MENU_COLUMNS} FROM menu_items WHERE id = ?", [item_id])
        if not row:
            raise NotFoundError("menu item", item_id)
        return MenuItem(**row)

    @staticmethod
    def _validate_fields(price: Decimal, stock: int) -> None:
        if Decimal(price) <= 0:
            raise InvalidArgumentError("price must be greater than 0", details={"price": str(price)})
        if stock < 0:
            raise InvalidArgumentError("stock must be >= 0", details={"stock": stock})
