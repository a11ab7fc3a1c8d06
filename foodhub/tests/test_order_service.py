"""
订单服务测试
"""

from datetime import date, datetime, timedelta

import pytest

from foodhub.core.exceptions import InvalidArgumentError, InvalidTransitionError, NotFoundError
from foodhub.models.order import OrderStatus
from foodhub.models.user import Principal, Role


def _principal(user):
    return Principal(user_id=user.id, email=user.email, role=Role(user.role))


@pytest.fixture
def placed_order(services, customer, burger):
    services.carts.add_item(customer.id, burger.id, 1)
    return services.orders.checkout(customer.id).order


class TestOrderStatus:
    """订单状态机"""

    @pytest.mark.parametrize("status", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_terminal_states(self, status):
        assert status.is_terminal
        assert not status.can_be_updated
        assert not status.can_be_cancelled

    @pytest.mark.parametrize("status,cancellable", [
        (OrderStatus.PENDING, True),
        (OrderStatus.CONFIRMED, True),
        (OrderStatus.PREPARING, False),
        (OrderStatus.READY, False),
    ])
    def test_cancellable_window(self, status, cancellable):
        assert status.can_be_cancelled is cancellable
        assert status.can_be_updated


class TestOrderService:
    """订单服务测试"""

    def test_history_is_scoped_and_newest_first(
        self, services, customer, other_customer, burger, insert_order
    ):
        now = datetime.now()
        older = insert_order(customer.id, now - timedelta(days=2), [(burger.id, "Burger", 1, "12.99")])
        newer = insert_order(customer.id, now - timedelta(days=1), [(burger.id, "Burger", 2, "12.99")])
        insert_order(other_customer.id, now, [(burger.id, "Burger", 1, "12.99")])

        orders, total = services.orders.get_history(customer.id, 0, 10)
        assert total == 2
        assert [o.id for o in orders] == [newer, older]

        page, total = services.orders.get_history(customer.id, 1, 1)
        assert total == 2
        assert [o.id for o in page] == [older]

    def test_details_for_owner(self, services, customer, placed_order):
        order = services.orders.get_details(_principal(customer), placed_order.id)
        assert order.id == placed_order.id
        assert len(order.items) == 1

    def test_details_hidden_from_other_customers(self, services, other_customer, placed_order):
        with pytest.raises(NotFoundError):
            services.orders.get_details(_principal(other_customer), placed_order.id)

    def test_admin_can_read_any_order(self, services, admin_user, placed_order):
        order = services.orders.get_details(_principal(admin_user), placed_order.id)
        assert order.id == placed_order.id

    def test_update_status_through_workflow(self, services, admin_user, placed_order):
        for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING,
                       OrderStatus.READY, OrderStatus.DELIVERED):
            order = services.orders.update_status(admin_user.id, placed_order.id, status)
            assert order.status == status.value

    def test_terminal_order_cannot_change(self, services, admin_user, placed_order):
        services.orders.update_status(admin_user.id, placed_order.id, OrderStatus.DELIVERED)

        with pytest.raises(InvalidTransitionError):
            services.orders.update_status(admin_user.id, placed_order.id, OrderStatus.PENDING)

    def test_update_status_unknown_order(self, services, admin_user):
        with pytest.raises(NotFoundError):
            services.orders.update_status(admin_user.id, "missing", OrderStatus.CONFIRMED)

    def test_cancel_pending_does_not_restore_stock(self, services, customer, burger, placed_order):
        order = services.orders.cancel(customer.id, placed_order.id)

        assert order.status == OrderStatus.CANCELLED.value
        assert services.menus.get_item(burger.id).stock == 4

    def test_cancel_delivered_is_invalid(self, services, customer, admin_user, placed_order):
        services.orders.update_status(admin_user.id, placed_order.id, OrderStatus.DELIVERED)

        with pytest.raises(InvalidTransitionError):
            services.orders.cancel(customer.id, placed_order.id)

        order = services.orders.get_details(_principal(customer), placed_order.id)
        assert order.status == OrderStatus.DELIVERED.value

    def test_cancel_preparing_is_invalid(self, services, customer, admin_user, placed_order):
        services.orders.update_status(admin_user.id, placed_order.id, OrderStatus.PREPARING)
        with pytest.raises(InvalidTransitionError):
            services.orders.cancel(customer.id, placed_order.id)

    def test_cancel_foreign_order_is_not_found(self, services, other_customer, placed_order):
        with pytest.raises(NotFoundError):
            services.orders.cancel(other_customer.id, placed_order.id)

    def test_list_all_filters_by_status(self, services, admin_user, customer, burger, insert_order):
        now = datetime.now()
        insert_order(customer.id, now, [(burger.id, "Burger", 1, "12.99")], status="pending")
        delivered = insert_order(customer.id, now, [(burger.id, "Burger", 1, "12.99")])

        orders, total = services.orders.list_all(0, 10, OrderStatus.DELIVERED)
        assert total == 1
        assert orders[0].id == delivered

        _, total = services.orders.list_all(0, 10)
        assert total == 2

    def test_list_by_date_range_is_inclusive(self, services, customer, burger, insert_order):
        day = date(2024, 3, 10)
        inside = insert_order(customer.id, datetime(2024, 3, 10, 23, 59),
                              [(burger.id, "Burger", 1, "12.99")])
        insert_order(customer.id, datetime(2024, 3, 11, 0, 0), [(burger.id, "Burger", 1, "12.99")])

        orders = services.orders.list_by_date_range(day, day)
        assert [o.id for o in orders] == [inside]

    def test_list_by_date_range_rejects_inverted_range(self, services):
        with pytest.raises(InvalidArgumentError):
            services.orders.list_by_date_range(date(2024, 3, 2), date(2024, 3, 1))
