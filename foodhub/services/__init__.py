"""
Business logic services.
Contains service layer implementations for core business operations.
"""

from ..config.settings import Settings
from ..core.database import DatabaseManager
from ..core.security import SecurityManager
from .audit_service import AuditService
from .cart_service import CartService
from .export_service import ExportService
from .menu_service import MenuService
from .order_service import OrderService
from .report_service import ReportService
from .seed_service import SeedService
from .user_service import UserService


class ServiceRegistry:
    """把所有服务绑定到同一个数据库管理器和配置上"""

    def __init__(self, db: DatabaseManager, settings: Settings,
                 security: SecurityManager = None):
        self.db = db
        self.settings = settings
        self.security = security or SecurityManager(settings)
        self.audit = AuditService(db)
        self.users = UserService(db, self.security, settings)
        self.menus = MenuService(db)
        self.carts = CartService(db, self.menus)
        self.orders = OrderService(db, self.carts, self.menus)
        self.reports = ReportService(db)
        self.exports = ExportService(self.reports)
        self.seeder = SeedService(db, self.users)


__all__ = [
    "AuditService",
    "CartService",
    "ExportService",
    "MenuService",
    "OrderService",
    "ReportService",
    "SeedService",
    "ServiceRegistry",
    "UserService",
]
