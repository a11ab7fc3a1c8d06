from ..settings import Settings

class DevelopmentSettings(Settings):
    debug: bool = True
    log_json: bool = False
    log_level: str = "DEBUG"
    seed_demo_data: bool = True
    database_url: str = "duckdb://./foodhub/data/foodhub_dev.duckdb"
