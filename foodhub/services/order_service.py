"""
订单服务模块
提供订单相关的核心业务逻辑，包括结算、查询、状态流转和取消

主要功能：
- 购物车结算：校验、扣减库存、写入订单和订单行、删除已结算的购物车行
- 订单历史和详情查询（带归属校验）
- 管理员修改订单状态
- 用户取消订单

业务规则：
- 校验、扣减库存、写入订单在同一个事务内完成，任何失败都会整体回滚
- 扣减库存使用条件更新，并发结算不会把库存扣成负数
- 已结算的购物车行在同一个事务内删除，同一购物车不会被重复下单
- 已送达或已取消的订单不能再修改状态
- 只有待确认和已确认的订单可以取消，取消不会恢复库存
"""

import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from ..core.database import DatabaseManager, fetch_dict, fetch_dicts
from ..core.exceptions import (
    BaseApplicationError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    RollbackFailedError,
)
from ..core.logging import get_logger
from ..models.cart import Cart
from ..models.order import CheckoutPhase, CheckoutResult, Order, OrderLine, OrderStatus
from ..models.user import Principal
from .audit_service import AuditService
from .cart_service import CartService
from .menu_service import MenuService

_ORDER_COLUMNS = "id, user_id, total_amount, status, created_at, updated_at"
_LINE_COLUMNS = "id, order_id, menu_item_id, quantity, price, menu_name, created_at"


class OrderService:
    """订单服务类，封装所有订单相关的业务逻辑"""

    def __init__(self, db: DatabaseManager, cart_service: CartService,
                 menu_service: MenuService, logger=None):
        self.db = db
        self.cart_service = cart_service
        self.menu_service = menu_service
        self.logger = logger or get_logger(__name__)

    def checkout(self, user_id: str) -> CheckoutResult:
        """
        把购物车转换为订单

        校验、扣减库存、写入订单和订单行、删除已结算的购物车行在同一个事务内完成。
        同一购物车的重复提交会在第二次校验时得到 EmptyCartError。

        Args:
            user_id: 下单用户ID

        Returns:
            CheckoutResult: 新订单（pending，含订单行）及非致命提示

        Raises:
            EmptyCartError: 购物车为空
            OutOfStockError: 有菜品库存不足或已下架（包括并发结算中被抢走）
            ConflictError: 存储层写冲突
            RollbackFailedError: 回滚本身失败，需要人工对账
        """
        order_id = str(uuid.uuid4())
        log = self.logger.bind(user_id=user_id, order_id=order_id)
        phase = CheckoutPhase.VALIDATING
        menu_item_ids: List[str] = []

        try:
            with self.db.transaction() as con:
                log.debug("checkout_phase", phase=phase.value)
                cart = self.cart_service.validate_in(con, user_id)

                phase = CheckoutPhase.RESERVING_STOCK
                log.debug("checkout_phase", phase=phase.value)
                quantities: Dict[str, int] = defaultdict(int)
                for line in cart.items:
                    quantities[line.menu_item_id] += line.quantity
                menu_item_ids = sorted(quantities)
                self.menu_service.reserve_stock(con, dict(quantities))

                phase = CheckoutPhase.PERSISTING_ORDER
                log.debug("checkout_phase", phase=phase.value)
                total = sum((line.price * line.quantity for line in cart.items), Decimal("0.00"))
                now = datetime.now()
                con.execute(
                    f"INSERT INTO orders({_ORDER_COLUMNS}) VALUES (?,?,?,?,?,?)",
                    [order_id, user_id, total, OrderStatus.PENDING.value, now, now],
                )
                con.executemany(
                    f"INSERT INTO order_items({_LINE_COLUMNS}) VALUES (?,?,?,?,?,?,?)",
                    [
                        [str(uuid.uuid4()), order_id, line.menu_item_id, line.quantity,
                         line.price, line.menu_name, now]
                        for line in cart.items
                    ],
                )
                AuditService.record(con, "order_checkout", user_id, user_id, {
                    "order_id": order_id,
                    "total_amount": total,
                    "menu_item_ids": menu_item_ids,
                })

                # 只删除本次结算的行，校验之后加入的行留在购物车里
                phase = CheckoutPhase.CLEARING_CART
                log.debug("checkout_phase", phase=phase.value)
                self.cart_service.remove_lines_in(
                    con, user_id, [line.id for line in cart.items], order_id=order_id
                )
        except RollbackFailedError:
            log.error("checkout_rollback_failed", phase=phase.value,
                      menu_item_ids=menu_item_ids)
            raise
        except BaseApplicationError as e:
            log.info("checkout_failed", phase=phase.value, error_code=e.error_code,
                     error=e.message)
            raise

        warnings = self._price_change_warnings(cart)
        if warnings:
            log.warning("checkout_price_snapshots_stale", lines=len(warnings))

        log.debug("checkout_phase", phase=CheckoutPhase.DONE.value)
        log.info("checkout_completed", total_amount=str(total), lines=len(cart.items))
        return CheckoutResult(order=self._get(order_id), warnings=warnings)

    @staticmethod
    def _price_change_warnings(cart: Cart) -> List[str]:
        """按快照价结算，但菜品当前价格已经变化的行"""
        return [
            f"Price of {line.menu_name} changed to {line.current_price:.2f} after it was "
            f"added to the cart; charged the cart price {line.price:.2f}"
            for line in cart.items
            if line.price_changed
        ]

    def get_history(self, user_id: str, offset: int = 0,
                    limit: int = 10) -> Tuple[List[Order], int]:
        """用户订单历史，按创建时间倒序"""
        return self._list("WHERE user_id = ?", [user_id], offset, limit)

    def get_details(self, principal: Principal, order_id: str) -> Order:
        """订单详情；非管理员只能查看自己的订单，其余一律返回不存在"""
        order = self._get(order_id)
        if not principal.is_admin and order.user_id != principal.user_id:
            raise NotFoundError("order", order_id)
        return order

    def update_status(self, actor_id: str, order_id: str,
                      new_status: OrderStatus) -> Order:
        """
        管理员修改订单状态

        Raises:
            NotFoundError: 订单不存在
            InvalidTransitionError: 订单已处于终态
        """
        new_status = OrderStatus(new_status)
        with self.db.transaction() as con:
            order = self._load(con, order_id)
            current = OrderStatus(order.status)
            if not current.can_be_updated:
                raise InvalidTransitionError(
                    f"Order is already {current.value}",
                    details={"from": current.value, "to": new_status.value},
                )
            self._set_status(con, order_id, new_status)
            AuditService.record(con, "order_status_change", order.user_id, actor_id, {
                "order_id": order_id, "from": current.value, "to": new_status.value,
            })
        self.logger.info("order_status_changed", order_id=order_id,
                         from_status=current.value, to_status=new_status.value)
        return self._get(order_id)

    def cancel(self, user_id: str, order_id: str) -> Order:
        """用户取消自己的订单，只允许 pending/confirmed，不恢复库存"""
        with self.db.transaction() as con:
            order = self._load(con, order_id)
            if order.user_id != user_id:
                raise NotFoundError("order", order_id)
            current = OrderStatus(order.status)
            if not current.can_be_cancelled:
                raise InvalidTransitionError(
                    f"Order cannot be cancelled while {current.value}",
                    details={"from": current.value, "to": OrderStatus.CANCELLED.value},
                )
            self._set_status(con, order_id, OrderStatus.CANCELLED)
            AuditService.record(con, "order_cancel", user_id, user_id, {
                "order_id": order_id, "from": current.value,
            })
        self.logger.info("order_cancelled", order_id=order_id, user_id=user_id)
        return self._get(order_id)

    def list_all(self, offset: int = 0, limit: int = 10,
                 status: Optional[OrderStatus] = None) -> Tuple[List[Order], int]:
        """全部订单（管理员），可按状态过滤"""
        if status is None:
            return self._list("", [], offset, limit)
        return self._list("WHERE status = ?", [OrderStatus(status).value], offset, limit)

    def list_by_date_range(self, start: date, end: date) -> List[Order]:
        """按创建日期（含首尾两天）查询订单"""
        if start is None or end is None:
            raise InvalidArgumentError("start_date and end_date are required")
        if start > end:
            raise InvalidArgumentError(
                "start_date must not be after end_date",
                details={"start_date": str(start), "end_date": str(end)},
            )
        with self.db.snapshot() as con:
            rows = fetch_dicts(
                con,
                f"""
                SELECT {_ORDER_COLUMNS} FROM orders
                WHERE created_at >= ? AND created_at < ?
                ORDER BY created_at DESC, id
                """,
                [start, end + timedelta(days=1)],
            )
            return self._attach_lines(con, rows)

    def _list(self, where: str, params: list, offset: int,
              limit: int) -> Tuple[List[Order], int]:
        with self.db.snapshot() as con:
            total = con.execute(f"SELECT COUNT(*) FROM orders {where}", params).fetchone()[0]
            rows = fetch_dicts(
                con,
                f"""
                SELECT {_ORDER_COLUMNS} FROM orders {where}
                ORDER BY created_at DESC, id
                LIMIT ? OFFSET ?
                """,
                params + [limit, offset],
            )
            return self._attach_lines(con, rows), total

    def _get(self, order_id: str) -> Order:
        with self.db.snapshot() as con:
            return self._load(con, order_id)

    def _load(self, con, order_id: str) -> Order:
        row = fetch_dict(con, f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = ?", [order_id])
        if not row:
            raise NotFoundError("order", order_id)
        return self._attach_lines(con, [row])[0]

    @staticmethod
    def _attach_lines(con, rows: List[dict]) -> List[Order]:
        if not rows:
            return []
        ids = [r["id"] for r in rows]
        placeholders = ",".join("?" for _ in ids)
        lines: Dict[str, List[OrderLine]] = defaultdict(list)
        for line in fetch_dicts(
            con,
            f"""
            SELECT {_LINE_COLUMNS} FROM order_items
            WHERE order_id IN ({placeholders})
            ORDER BY created_at, menu_name, id
            """,
            ids,
        ):
            lines[line["order_id"]].append(OrderLine(**line))
        return [Order(**r, items=lines[r["id"]]) for r in rows]

    @staticmethod
    def _set_status(con, order_id: str, status: OrderStatus) -> None:
        con.execute(
            "UPDATE orders SET status = ?, updated_at = ? WHERE id = ?",
            [status.value, datetime.now(), order_id],
        )
