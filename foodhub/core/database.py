"""
数据库连接和管理模块
封装 DuckDB 连接、表结构初始化以及事务边界

并发模型：
- 写事务通过 transaction() 进入，持有进程内写锁（带超时），保证同一时刻只有一个写事务
- 读操作通过 snapshot() 使用独立游标，不加锁，依赖 DuckDB 的快照隔离
- DuckDB 的事务冲突映射为 ConflictError，其余驱动错误映射为 StoreUnavailableError
"""

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import duckdb

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    RollbackFailedError,
    StoreUnavailableError,
)
from .logging import get_logger
from ..config.settings import settings as default_settings

logger = get_logger(__name__)

# 完整的表结构定义
SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS users (
  id VARCHAR PRIMARY KEY,
  email VARCHAR UNIQUE NOT NULL,
  password_hash VARCHAR NOT NULL,
  role VARCHAR CHECK(role IN ('admin','customer')) NOT NULL DEFAULT 'customer',
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS menu_items (
  id VARCHAR PRIMARY KEY,
  name VARCHAR NOT NULL,
  description TEXT,
  price DECIMAL(10,2) NOT NULL,
  category VARCHAR NOT NULL,
  stock INTEGER NOT NULL DEFAULT 0 CHECK(stock >= 0),
  image_url VARCHAR,
  is_active BOOLEAN NOT NULL DEFAULT TRUE,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);


CREATE TABLE IF NOT EXISTS carts (
  id VARCHAR PRIMARY KEY,
  user_id VARCHAR NOT NULL UNIQUE,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS cart_items (
  id VARCHAR PRIMARY KEY,
  cart_id VARCHAR NOT NULL,
  menu_item_id VARCHAR NOT NULL,
  quantity INTEGER NOT NULL CHECK(quantity > 0),
  price DECIMAL(10,2) NOT NULL,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now(),
  UNIQUE (cart_id, menu_item_id)
);

CREATE TABLE IF NOT EXISTS orders (
  id VARCHAR PRIMARY KEY,
  user_id VARCHAR NOT NULL,
  total_amount DECIMAL(10,2) NOT NULL,
  status VARCHAR CHECK(status IN ('pending','confirmed','preparing','ready','delivered','cancelled')) NOT NULL DEFAULT 'pending',
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_orders_user ON orders(user_id);

CREATE TABLE IF NOT EXISTS order_items (
  id VARCHAR PRIMARY KEY,
  order_id VARCHAR NOT NULL,
  menu_item_id VARCHAR NOT NULL,
  quantity INTEGER NOT NULL CHECK(quantity > 0),
  price DECIMAL(10,2) NOT NULL,
  menu_name VARCHAR NOT NULL,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id);
CREATE INDEX IF NOT EXISTS idx_order_items_menu ON order_items(menu_item_id);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id VARCHAR,
  actor_id VARCHAR,
  action VARCHAR,
  detail_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_user ON logs(user_id);
CREATE INDEX IF NOT EXISTS idx_logs_actor ON logs(actor_id);
CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


def fetch_dicts(con: duckdb.DuckDBPyConnection, query: str,
                params: Optional[list] = None) -> List[Dict[str, Any]]:
    """执行查询，按列名返回字典列表"""
    cur = con.execute(query, params or [])
    columns = [col[0] for col in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]


def fetch_dict(con: duckdb.DuckDBPyConnection, query: str,
               params: Optional[list] = None) -> Optional[Dict[str, Any]]:
    rows = fetch_dicts(con, query, params)
    return rows[0] if rows else None


def _is_conflict(error: Exception) -> bool:
    text = str(error).lower()
    return (
        isinstance(error, duckdb.TransactionException)
        or "conflict" in text
        or "serialization" in text
    )


class DatabaseManager:
    """数据库管理器，封装连接、事务和读快照"""

    def __init__(self, database_url: Optional[str] = None,
                 lock_timeout: Optional[float] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self._cursor_lock = threading.Lock()
        self.db_path = self._parse_db_path(database_url or default_settings.database_url)
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None
            else default_settings.db_lock_timeout_seconds
        )

    @staticmethod
    def _parse_db_path(db_url: str) -> str:
        """从 duckdb:// URL 中解析数据库路径"""
        if db_url.startswith("duckdb:///:memory:") or db_url == "duckdb://:memory:":
            return ":memory:"
        if db_url.startswith("duckdb://"):
            return db_url.replace("duckdb://", "", 1)
        return db_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取根连接，首次访问时建立并初始化表结构"""
        if self._connection is None:
            with self._cursor_lock:
                if self._connection is None:
                    if self.db_path != ":memory:":
                        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                    try:
                        conn = duckdb.connect(self.db_path)
                        conn.execute(SCHEMA_SQL)
                    except duckdb.Error as e:
                        raise StoreUnavailableError(
                            f"Failed to initialize database: {e}"
                        ) from e
                    self._connection = conn
        return self._connection

    def init_database(self):
        """初始化数据库（幂等）"""
        return self.connection

    def close(self):
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _cursor(self) -> duckdb.DuckDBPyConnection:
        root = self.connection
        with self._cursor_lock:
            return root.cursor()

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        写事务上下文管理器

        - 获取写锁，超过 lock_timeout 仍未获得则抛出 StoreUnavailableError
        - 正常退出时 COMMIT；任何异常都会 ROLLBACK
        - 应用异常回滚后原样抛出；驱动异常转换为 ConflictError/StoreUnavailableError
        - ROLLBACK 本身失败时抛出 RollbackFailedError
        """
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise StoreUnavailableError(
                "Timed out waiting for the write lock",
                details={"timeout_seconds": self.lock_timeout},
            )
        try:
            cursor = self._cursor()
            try:
                cursor.execute("BEGIN TRANSACTION")
                try:
                    yield cursor
                except BaseApplicationError as e:
                    self._rollback(cursor, e)
                    raise
                except duckdb.Error as e:
                    self._rollback(cursor, e)
                    raise self._translate(e) from e
                except Exception as e:
                    self._rollback(cursor, e)
                    raise
                try:
                    cursor.execute("COMMIT")
                except duckdb.Error as e:
                    # 提交失败时 DuckDB 已自动中止该事务
                    raise self._translate(e) from e
            finally:
                cursor.close()
        finally:
            self._lock.release()

    @staticmethod
    def _rollback(cursor: duckdb.DuckDBPyConnection, cause: Exception) -> None:
        try:
            cursor.execute("ROLLBACK")
        except duckdb.Error as rollback_error:
            logger.error(
                "transaction_rollback_failed",
                error=str(cause),
                rollback_error=str(rollback_error),
            )
            raise RollbackFailedError(
                "Transaction rollback failed",
                details={"cause": str(cause), "rollback_error": str(rollback_error)},
            ) from cause

    @staticmethod
    def _translate(error: duckdb.Error) -> BaseApplicationError:
        """把驱动异常转换为应用异常"""
        if isinstance(error, duckdb.ConstraintException) or _is_conflict(error):
            return ConflictError(
                "Concurrent update conflict, please retry",
                details={"cause": str(error)},
            )
        return StoreUnavailableError(f"Database operation failed: {error}")

    @contextmanager
    def snapshot(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """只读游标，不持有写锁"""
        cursor = self._cursor()
        try:
            yield cursor
        except duckdb.Error as e:
            raise StoreUnavailableError(f"Query execution failed: {e}") from e
        finally:
            cursor.close()

    def execute_query(self, query: str, params: list = None) -> list:
        """执行查询并返回结果"""
        with self.snapshot() as con:
            return con.execute(query, params or []).fetchall()

    def execute_one(self, query: str, params: list = None) -> Optional[tuple]:
        """执行查询并返回单条结果"""
        with self.snapshot() as con:
            return con.execute(query, params or []).fetchone()
