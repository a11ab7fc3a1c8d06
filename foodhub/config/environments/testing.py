from ..settings import Settings

class TestingSettings(Settings):
    debug: bool = True
    database_url: str = "duckdb:///:memory:"
    jwt_secret_key: str = "test-secret-key"
    api_title: str = "FoodHub API (Test)"
    api_version: str = "1.0.0-test"
    # bcrypt 最小轮数，加快测试
    password_hash_rounds: int = 4
    log_json: bool = False
    log_level: str = "WARNING"
    db_lock_timeout_seconds: float = 5.0
