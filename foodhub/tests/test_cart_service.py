"""
购物车服务测试
"""

import threading
from decimal import Decimal

import pytest

from foodhub.core.exceptions import (
    EmptyCartError,
    InvalidArgumentError,
    NotFoundError,
    OutOfStockError,
)


class TestCartService:
    """购物车服务测试"""

    def test_add_item_snapshots_price(self, services, customer, burger):
        cart = services.carts.add_item(customer.id, burger.id, 2)

        assert len(cart.items) == 1
        line = cart.items[0]
        assert line.quantity == 2
        assert line.price == Decimal("12.99")
        assert line.menu_name == "Burger"
        assert cart.total == Decimal("25.98")

    def test_add_same_item_twice_increments_single_line(self, services, customer, burger):
        services.carts.add_item(customer.id, burger.id, 1)
        cart = services.carts.add_item(customer.id, burger.id, 2)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_add_beyond_stock_counts_existing_quantity(self, services, customer, burger):
        """Burger 库存 5：先加 3 成功，再加 3 失败，购物车和库存都不变"""
        services.carts.add_item(customer.id, burger.id, 3)

        with pytest.raises(OutOfStockError):
            services.carts.add_item(customer.id, burger.id, 3)

        cart = services.carts.get_cart(customer.id)
        assert cart.items[0].quantity == 3
        assert services.menus.get_item(burger.id).stock == 5

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_add_non_positive_quantity_rejected(self, services, customer, burger, quantity):
        with pytest.raises(InvalidArgumentError):
            services.carts.add_item(customer.id, burger.id, quantity)

    def test_add_unknown_item(self, services, customer):
        with pytest.raises(NotFoundError):
            services.carts.add_item(customer.id, "missing-id", 1)

    def test_add_inactive_item(self, services, customer, make_menu_item):
        hidden = make_menu_item("Hidden Soup", "5.00", 10, is_active=False)
        with pytest.raises(OutOfStockError):
            services.carts.add_item(customer.id, hidden.id, 1)

    def test_price_snapshot_survives_catalog_change_until_sync(
        self, services, customer, admin_user, burger
    ):
        services.carts.add_item(customer.id, burger.id, 1)
        services.menus.update_item(
            admin_user.id, burger.id, name="Burger", price=Decimal("14.50"),
            category="Burgers", stock=5,
        )

        cart = services.carts.get_cart(customer.id)
        assert cart.items[0].price == Decimal("12.99")
        assert cart.items[0].price_changed is True

        result = services.carts.sync_prices(customer.id)
        assert result["updated_lines"] == 1
        assert result["cart"].items[0].price == Decimal("14.50")
        assert result["cart"].items[0].price_changed is False

    def test_update_line_rechecks_stock(self, services, customer, burger):
        cart = services.carts.add_item(customer.id, burger.id, 1)
        line_id = cart.items[0].id

        cart = services.carts.update_line(customer.id, line_id, 5)
        assert cart.items[0].quantity == 5

        with pytest.raises(OutOfStockError):
            services.carts.update_line(customer.id, line_id, 6)

    def test_update_line_to_zero_removes_it(self, services, customer, burger):
        cart = services.carts.add_item(customer.id, burger.id, 1)
        cart = services.carts.update_line(customer.id, cart.items[0].id, 0)
        assert cart.items == []

    @pytest.mark.parametrize("quantity", [1.5, True, "2"])
    def test_update_line_rejects_non_integer_quantity(self, services, customer, burger, quantity):
        cart = services.carts.add_item(customer.id, burger.id, 1)

        with pytest.raises(InvalidArgumentError):
            services.carts.update_line(customer.id, cart.items[0].id, quantity)
        assert services.carts.get_cart(customer.id).items[0].quantity == 1

    def test_update_line_false_does_not_remove(self, services, customer, burger):
        cart = services.carts.add_item(customer.id, burger.id, 1)

        with pytest.raises(InvalidArgumentError):
            services.carts.update_line(customer.id, cart.items[0].id, False)
        assert len(services.carts.get_cart(customer.id).items) == 1

    def test_concurrent_adds_share_one_line(self, services, test_db, customer, salad):
        """5 个线程同时各加 1 份，只能有一行且数量为 5"""
        workers = 5
        barrier = threading.Barrier(workers)
        errors = []

        def add_one():
            barrier.wait()
            try:
                services.carts.add_item(customer.id, salad.id, 1)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=add_one) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        count, total = test_db.execute_one("SELECT COUNT(*), SUM(quantity) FROM cart_items")
        assert (count, total) == (1, workers)

    def test_remove_lines_in_keeps_other_lines(self, services, test_db, customer, burger, salad):
        cart = services.carts.add_item(customer.id, burger.id, 1)
        burger_line = cart.items[0].id
        services.carts.add_item(customer.id, salad.id, 1)

        with test_db.transaction() as con:
            removed = services.carts.remove_lines_in(con, customer.id, [burger_line])

        assert removed == 1
        remaining = services.carts.get_cart(customer.id).items
        assert [line.menu_item_id for line in remaining] == [salad.id]

    def test_remove_lines_in_ignores_foreign_lines(
        self, services, test_db, customer, other_customer, burger
    ):
        cart = services.carts.add_item(other_customer.id, burger.id, 1)

        with test_db.transaction() as con:
            removed = services.carts.remove_lines_in(con, customer.id, [cart.items[0].id])

        assert removed == 0
        assert len(services.carts.get_cart(other_customer.id).items) == 1

    def test_foreign_line_is_not_found(self, services, customer, other_customer, burger):
        cart = services.carts.add_item(customer.id, burger.id, 1)
        line_id = cart.items[0].id

        with pytest.raises(NotFoundError):
            services.carts.remove_line(other_customer.id, line_id)
        with pytest.raises(NotFoundError):
            services.carts.update_line(other_customer.id, line_id, 2)

    def test_remove_missing_line_is_error(self, services, customer):
        with pytest.raises(NotFoundError):
            services.carts.remove_line(customer.id, "no-such-line")

    def test_clear_twice_is_idempotent(self, services, customer, burger, salad):
        services.carts.add_item(customer.id, burger.id, 1)
        services.carts.add_item(customer.id, salad.id, 1)

        services.carts.clear(customer.id)
        assert services.carts.get_cart(customer.id).items == []
        services.carts.clear(customer.id)
        assert services.carts.get_cart(customer.id).items == []

    def test_item_count(self, services, customer, burger, salad):
        assert services.carts.get_item_count(customer.id) == 0
        services.carts.add_item(customer.id, burger.id, 2)
        services.carts.add_item(customer.id, salad.id, 1)
        assert services.carts.get_item_count(customer.id) == 2

    def test_one_cart_per_user(self, services, test_db, customer, burger):
        services.carts.get_cart(customer.id)
        services.carts.add_item(customer.id, burger.id, 1)
        services.carts.get_cart(customer.id)

        count = test_db.execute_one("SELECT COUNT(*) FROM carts WHERE user_id = ?", [customer.id])
        assert count[0] == 1

    def test_validate_empty_cart(self, services, customer):
        with pytest.raises(EmptyCartError):
            services.carts.validate_for_checkout(customer.id)

    def test_validate_lists_items_exceeding_live_stock(
        self, services, customer, admin_user, burger, salad
    ):
        services.carts.add_item(customer.id, burger.id, 3)
        services.carts.add_item(customer.id, salad.id, 1)
        services.menus.set_stock(admin_user.id, burger.id, 2)

        with pytest.raises(OutOfStockError) as exc_info:
            services.carts.validate_for_checkout(customer.id)
        assert exc_info.value.details["menu_item_ids"] == [burger.id]
