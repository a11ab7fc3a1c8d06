# -*- coding: utf-8 -*-
"""
演示数据初始化脚本
写入演示管理员、演示顾客和一份示例菜单，重复执行不会产生重复数据
"""

import os
import sys

# 项目根目录
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from foodhub.config import load_settings  # noqa: E402
from foodhub.core.database import DatabaseManager  # noqa: E402
from foodhub.core.logging import configure_logging  # noqa: E402
from foodhub.services import ServiceRegistry  # noqa: E402


def show_help():
    """显示帮助信息"""
    print("Demo data seeding script")
    print("Usage:")
    print("  python scripts/seed.py [environment_name]")
    print("  python scripts/seed.py --help     # Show this help")
    print()
    print("The database location comes from FOODHUB_DATABASE_URL or the environment settings.")


def seed(env_name=None):
    """初始化指定环境的数据库"""
    settings = load_settings(env_name or os.getenv("FOODHUB_ENV"))
    configure_logging(settings.log_level, settings.log_json)

    db = DatabaseManager(settings.database_url, settings.db_lock_timeout_seconds)
    try:
        created = ServiceRegistry(db, settings).seeder.seed()
    finally:
        db.close()

    print("Database: {}".format(db.db_path))
    print("✓ Users created: {}".format(created["users"]))
    print("✓ Menu items created: {}".format(created["menu_items"]))
    return created


def main():
    """主函数"""
    if len(sys.argv) > 1 and sys.argv[1] in ("--help", "-h"):
        show_help()
        return
    seed(sys.argv[1] if len(sys.argv) > 1 else None)


if __name__ == "__main__":
    main()
