"""
购物车服务模块
维护每个用户唯一的购物车，以及加入、修改、删除、清空等操作

业务规则：
- 每个用户一个购物车，首次访问时创建
- 同一菜品在购物车中最多一行，重复加入时累加数量
- 行价格是加入时的快照，只有 sync_prices 才会刷新
- 加入或修改时按实时库存校验，结算时再校验一次
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.database import DatabaseManager, fetch_dict, fetch_dicts
from ..core.exceptions import (
    EmptyCartError,
    InvalidArgumentError,
    NotFoundError,
    OutOfStockError,
)
from ..core.logging import get_logger
from ..models.cart import Cart, CartLine
from .audit_service import AuditService
from .menu_service import MenuService

# 行数据附带实时的菜品名称、价格、库存，用于展示和结算校验
_LINE_QUERY = """
SELECT ci.id, ci.cart_id, ci.menu_item_id, ci.quantity, ci.price,
       ci.created_at, ci.updated_at,
       m.name AS menu_name, m.price AS current_price, m.is_active, m.stock
FROM cart_items ci
LEFT JOIN menu_items m ON m.id = ci.menu_item_id
WHERE ci.cart_id = ?
ORDER BY ci.created_at, ci.id
"""


class CartService:
    """购物车服务"""

    def __init__(self, db: DatabaseManager, menu_service: MenuService, logger=None):
        self.db = db
        self.menu_service = menu_service
        self.logger = logger or get_logger(__name__)

    def add_item(self, user_id: str, menu_item_id: str, quantity: int) -> Cart:
        """
        加入购物车

        已有同一菜品的行时累加数量（价格快照不变），库存按累加后的数量校验。

        Raises:
            InvalidArgumentError: 数量不是正整数
            NotFoundError: 菜品不存在
            OutOfStockError: 菜品已下架或库存不足
        """
        self._require_positive(quantity)
        with self.db.transaction() as con:
            item = self.menu_service.load_item(con, menu_item_id)
            cart_id = self._ensure_cart(con, user_id)

            existing = con.execute(
                "SELECT quantity FROM cart_items WHERE cart_id = ? AND menu_item_id = ?",
                [cart_id, menu_item_id],
            ).fetchone()
            wanted = quantity + (existing[0] if existing else 0)
            if not item.is_in_stock(wanted):
                raise OutOfStockError(
                    f"Insufficient stock for {item.name}",
                    details={
                        "menu_item_ids": [menu_item_id],
                        "requested": wanted,
                        "available": item.stock if item.is_active else 0,
                    },
                )

            now = datetime.now()
            con.execute(
                """
                INSERT INTO cart_items(id, cart_id, menu_item_id, quantity, price,
                                       created_at, updated_at)
                VALUES (?,?,?,?,?,?,?)
                ON CONFLICT (cart_id, menu_item_id)
                DO UPDATE SET quantity = quantity + excluded.quantity,
                              updated_at = excluded.updated_at
                """,
                [str(uuid.uuid4()), cart_id, menu_item_id, quantity, item.price, now, now],
            )
            AuditService.record(con, "cart_add", user_id, user_id, {
                "menu_item_id": menu_item_id, "quantity": quantity,
            })
            cart = self._load_cart(con, cart_id)

        self.logger.debug("cart_item_added", user_id=user_id,
                          menu_item_id=menu_item_id, quantity=quantity)
        return cart

    def update_line(self, user_id: str, line_id: str, quantity: int) -> Cart:
        """修改行数量，数量 <= 0 时等同于删除"""
        self._require_int(quantity)
        if quantity <= 0:
            return self.remove_line(user_id, line_id)

        with self.db.transaction() as con:
            line = self._owned_line(con, user_id, line_id)
            item = self.menu_service.load_item(con, line["menu_item_id"])
            if not item.is_in_stock(quantity):
                raise OutOfStockError(
                    f"Insufficient stock for {item.name}",
                    details={
                        "menu_item_ids": [item.id],
                        "requested": quantity,
                        "available": item.stock if item.is_active else 0,
                    },
                )
            con.execute(
                "UPDATE cart_items SET quantity = ?, updated_at = ? WHERE id = ?",
                [quantity, datetime.now(), line_id],
            )
            AuditService.record(con, "cart_update", user_id, user_id, {
                "line_id": line_id, "quantity": quantity,
            })
            return self._load_cart(con, line["cart_id"])

    def remove_line(self, user_id: str, line_id: str) -> Cart:
        """删除行；不存在或不属于当前用户时报错"""
        with self.db.transaction() as con:
            line = self._owned_line(con, user_id, line_id)
            con.execute("DELETE FROM cart_items WHERE id = ?", [line_id])
            AuditService.record(con, "cart_remove", user_id, user_id, {
                "line_id": line_id, "menu_item_id": line["menu_item_id"],
            })
            return self._load_cart(con, line["cart_id"])

    def clear(self, user_id: str) -> None:
        """清空购物车，已经为空时不做任何事"""
        with self.db.transaction() as con:
            self.clear_in(con, user_id)

    def clear_in(self, con, user_id: str) -> int:
        """在调用方事务中清空购物车，返回删除的行数"""
        cart = con.execute("SELECT id FROM carts WHERE user_id = ?", [user_id]).fetchone()
        if not cart:
            return 0
        removed = con.execute(
            "SELECT COUNT(*) FROM cart_items WHERE cart_id = ?", [cart[0]]
        ).fetchone()[0]
        if removed:
            con.execute("DELETE FROM cart_items WHERE cart_id = ?", [cart[0]])
            AuditService.record(con, "cart_clear", user_id, user_id, {"lines": removed})
        return removed

    def remove_lines_in(self, con, user_id: str, line_ids: List[str],
                        order_id: Optional[str] = None) -> int:
        """在调用方事务中删除指定的购物车行（结算用），返回删除的行数"""
        if not line_ids:
            return 0
        placeholders = ",".join("?" for _ in line_ids)
        removed = con.execute(
            f"""
            DELETE FROM cart_items
            WHERE id IN ({placeholders})
              AND cart_id = (SELECT id FROM carts WHERE user_id = ?)
            RETURNING id
            """,
            list(line_ids) + [user_id],
        ).fetchall()
        if removed:
            AuditService.record(con, "cart_clear", user_id, user_id, {
                "lines": len(removed), "order_id": order_id,
            })
        return len(removed)

    def get_cart(self, user_id: str) -> Cart:
        with self.db.snapshot() as con:
            row = fetch_dict(con, "SELECT id FROM carts WHERE user_id = ?", [user_id])
            if row:
                return self._load_cart(con, row["id"])
        with self.db.transaction() as con:
            cart_id = self._ensure_cart(con, user_id)
            return self._load_cart(con, cart_id)

    def get_item_count(self, user_id: str) -> int:
        with self.db.snapshot() as con:
            return con.execute(
                """
                SELECT COUNT(*) FROM cart_items ci
                JOIN carts c ON c.id = ci.cart_id
                WHERE c.user_id = ?
                """,
                [user_id],
            ).fetchone()[0]

    def validate_for_checkout(self, user_id: str) -> Cart:
        with self.db.snapshot() as con:
            return self.validate_in(con, user_id)

    def validate_in(self, con, user_id: str) -> Cart:
        """
        按实时库存校验购物车

        Raises:
            EmptyCartError: 购物车没有任何行
            OutOfStockError: 有行的数量超过实时库存或菜品已下架，details 中列出全部
        """
        row = fetch_dict(con, "SELECT id FROM carts WHERE user_id = ?", [user_id])
        cart = self._load_cart(con, row["id"]) if row else None
        if cart is None or not cart.items:
            raise EmptyCartError()

        offending = [
            line.menu_item_id for line in cart.items
            if not line.is_active or line.stock is None or line.stock < line.quantity
        ]
        if offending:
            raise OutOfStockError(
                "Some cart items are no longer available in the requested quantity",
                details={"menu_item_ids": offending},
            )
        return cart

    def sync_prices(self, user_id: str) -> Dict[str, Any]:
        """把与当前菜品价格不一致的行快照更新为当前价格"""
        with self.db.transaction() as con:
            cart_id = self._ensure_cart(con, user_id)
            cart = self._load_cart(con, cart_id)
            changed = [line for line in cart.items if line.price_changed]
            now = datetime.now()
            for line in changed:
                con.execute(
                    "UPDATE cart_items SET price = ?, updated_at = ? WHERE id = ?",
                    [line.current_price, now, line.id],
                )
            if changed:
                AuditService.record(con, "cart_sync_prices", user_id, user_id, {
                    "line_ids": [line.id for line in changed],
                })
            cart = self._load_cart(con, cart_id)

        return {"cart": cart, "updated_lines": len(changed)}

    @staticmethod
    def _require_int(quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidArgumentError(
                "quantity must be an integer", details={"quantity": quantity}
            )

    @classmethod
    def _require_positive(cls, quantity: int) -> None:
        cls._require_int(quantity)
        if quantity <= 0:
            raise InvalidArgumentError(
                "quantity must be a positive integer", details={"quantity": quantity}
            )

    @staticmethod
    def _ensure_cart(con, user_id: str) -> str:
        con.execute(
            "INSERT INTO carts(id, user_id) VALUES (?, ?) ON CONFLICT (user_id) DO NOTHING",
            [str(uuid.uuid4()), user_id],
        )
        return con.execute("SELECT id FROM carts WHERE user_id = ?", [user_id]).fetchone()[0]

    @staticmethod
    def _owned_line(con, user_id: str, line_id: str) -> Dict[str, Any]:
        line = fetch_dict(
            con,
            """
            SELECT ci.id, ci.cart_id, ci.menu_item_id, ci.quantity
            FROM cart_items ci
            JOIN carts c ON c.id = ci.cart_id
            WHERE ci.id = ? AND c.user_id = ?
            """,
            [line_id, user_id],
        )
        if not line:
            raise NotFoundError("cart item", line_id)
        return line

    @staticmethod
    def _load_cart(con, cart_id: str) -> Cart:
        cart_row = fetch_dict(
            con, "SELECT id, user_id, created_at, updated_at FROM carts WHERE id = ?", [cart_id]
        )
        lines: List[CartLine] = [CartLine(**r) for r in fetch_dicts(con, _LINE_QUERY, [cart_id])]
        return Cart(**cart_row, items=lines)
