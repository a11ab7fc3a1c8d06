from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./foodhub/data/foodhub.duckdb"
    db_lock_timeout_seconds: float = 10.0

    # JWT配置
    jwt_secret_key: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7天

    # 密码与注册
    password_hash_rounds: int = 12
    allow_admin_signup: bool = False

    # API配置
    api_title: str = "FoodHub API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    default_page_size: int = 10
    max_page_size: int = 100

    # 日志
    log_level: str = "INFO"
    log_json: bool = True

    # 启动时写入演示数据
    seed_demo_data: bool = False

    # 开发模式
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FOODHUB_",
        case_sensitive=False,
        extra="ignore",
    )


# 全局设置实例
settings = Settings()
