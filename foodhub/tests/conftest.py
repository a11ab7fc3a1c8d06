"""
测试配置文件
提供测试所需的fixtures和配置
"""

import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from foodhub.app import create_app
from foodhub.config.environments.testing import TestingSettings
from foodhub.core.database import DatabaseManager
from foodhub.models.user import Role
from foodhub.services import ServiceRegistry

CUSTOMER_PASSWORD = "CustomerPassword123!"
ADMIN_PASSWORD = "AdminPassword123!"


@pytest.fixture
def test_settings():
    """测试配置"""
    return TestingSettings()


@pytest.fixture
def test_db(test_settings):
    """内存测试数据库"""
    db = DatabaseManager(test_settings.database_url, test_settings.db_lock_timeout_seconds)
    db.init_database()
    yield db
    db.close()


@pytest.fixture
def services(test_db, test_settings):
    """绑定到测试数据库的服务集合"""
    return ServiceRegistry(test_db, test_settings)


@pytest.fixture
def make_user(services, test_db):
    """创建用户，返回 User"""
    def _make(email: str, role: Role = Role.CUSTOMER, password: str = CUSTOMER_PASSWORD):
        with test_db.transaction() as con:
            user_id = services.users.ensure_user(con, email, password, role)
        return services.users.get_profile(user_id)
    return _make


@pytest.fixture
def customer(make_user):
    return make_user("customer@example.com")


@pytest.fixture
def other_customer(make_user):
    return make_user("other@example.com")


@pytest.fixture
def admin_user(make_user):
    return make_user("admin@example.com", Role.ADMIN, ADMIN_PASSWORD)


@pytest.fixture
def make_menu_item(services, admin_user):
    """创建菜品，返回 MenuItem"""
    def _make(name: str, price: str, stock: int, category: str = "Mains",
              is_active: bool = True):
        return services.menus.create_item(
            admin_user.id, name=name, price=Decimal(price), category=category,
            stock=stock, is_active=is_active,
        )
    return _make


@pytest.fixture
def burger(make_menu_item):
    return make_menu_item("Burger", "12.99", 5, category="Burgers")


@pytest.fixture
def salad(make_menu_item):
    return make_menu_item("Salad", "9.75", 10, category="Salads")


@pytest.fixture
def insert_order(test_db):
    """直接写入一个订单（用于报表等需要指定时间和状态的场景）"""
    def _insert(user_id: str, created_at: datetime, lines, status: str = "delivered"):
        order_id = str(uuid.uuid4())
        total = sum((Decimal(price) * qty for _, _, qty, price in lines), Decimal("0.00"))
        with test_db.transaction() as con:
            con.execute(
                "INSERT INTO orders(id, user_id, total_amount, status, created_at, updated_at) "
                "VALUES (?,?,?,?,?,?)",
                [order_id, user_id, total, status, created_at, created_at],
            )
            for menu_item_id, menu_name, qty, price in lines:
                con.execute(
                    "INSERT INTO order_items(id, order_id, menu_item_id, quantity, price, "
                    "menu_name, created_at) VALUES (?,?,?,?,?,?,?)",
                    [str(uuid.uuid4()), order_id, menu_item_id, qty, Decimal(price),
                     menu_name, created_at],
                )
        return order_id
    return _insert


@pytest.fixture
def app_instance(test_settings, test_db):
    """测试应用"""
    return create_app(test_settings, test_db)


@pytest.fixture
def client(app_instance):
    """测试客户端"""
    with TestClient(app_instance) as c:
        yield c


@pytest.fixture
def auth_headers(services):
    """为指定用户生成认证请求头"""
    def _headers(user):
        token = services.security.create_jwt_token(user.id, user.email, Role(user.role))
        return {"Authorization": f"Bearer {token}"}
    return _headers
