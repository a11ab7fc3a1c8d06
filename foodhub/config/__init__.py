from typing import Optional

from .settings import Settings, settings


def load_settings(env: Optional[str] = None) -> Settings:
    """按环境名加载配置，未知或为空时使用默认配置"""
    if env == "development":
        from .environments.development import DevelopmentSettings
        return DevelopmentSettings()
    if env == "testing":
        from .environments.testing import TestingSettings
        return TestingSettings()
    return settings


__all__ = ["Settings", "settings", "load_settings"]
