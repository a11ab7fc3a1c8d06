"""
演示数据初始化
幂等：已存在的账号不会重复创建，菜品表非空时不再写入菜品
"""

import uuid
from decimal import Decimal
from typing import Dict

from ..core.database import DatabaseManager
from ..core.logging import get_logger
from ..models.user import Role
from .audit_service import AuditService
from .user_service import UserService

DEMO_USERS = [
    ("admin@example.com", "AdminPassword123!", Role.ADMIN),
    ("customer@example.com", "CustomerPassword123!", Role.CUSTOMER),
]

DEMO_MENU = [
    {
        "name": "Classic Burger",
        "description": "A juicy beef patty with lettuce, tomato, and our special sauce.",
        "price": Decimal("12.99"),
        "category": "Burgers",
        "stock": 100,
    },
    {
        "name": "Margherita Pizza",
        "description": "Classic pizza with fresh mozzarella, tomatoes, and basil.",
        "price": Decimal("15.50"),
        "category": "Pizzas",
        "stock": 50,
    },
    {
        "name": "Caesar Salad",
        "description": "Crisp romaine lettuce with Caesar dressing, croutons, and parmesan cheese.",
        "price": Decimal("9.75"),
        "category": "Salads",
        "stock": 75,
    },
    {
        "name": "Chocolate Lava Cake",
        "description": "Warm chocolate cake with a gooey molten center.",
        "price": Decimal("7.00"),
        "category": "Desserts",
        "stock": 40,
    },
]


class SeedService:
    """演示数据初始化服务"""

    def __init__(self, db: DatabaseManager, user_service: UserService, logger=None):
        self.db = db
        self.user_service = user_service
        self.logger = logger or get_logger(__name__)

    def seed(self) -> Dict[str, int]:
        """写入演示账号和菜品，返回本次新增数量"""
        with self.db.transaction() as con:
            users_before = con.execute("SELECT COUNT(*) FROM users").fetchone()[0]
            for email, password, role in DEMO_USERS:
                self.user_service.ensure_user(con, email, password, role)
            users_created = con.execute("SELECT COUNT(*) FROM users").fetchone()[0] - users_before

            menu_created = 0
            if con.execute("SELECT COUNT(*) FROM menu_items").fetchone()[0] == 0:
                con.executemany(
                    """
                    INSERT INTO menu_items(id, name, description, price, category, stock, is_active)
                    VALUES (?,?,?,?,?,?,TRUE)
                    """,
                    [
                        [str(uuid.uuid4()), m["name"], m["description"], m["price"],
                         m["category"], m["stock"]]
                        for m in DEMO_MENU
                    ],
                )
                menu_created = len(DEMO_MENU)

            if users_created or menu_created:
                AuditService.record(con, "seed_demo_data", None, None, {
                    "users": users_created, "menu_items": menu_created,
                })

        self.logger.info("demo_data_seeded", users=users_created, menu_items=menu_created)
        return {"users": users_created, "menu_items": menu_created}
