"""
用户服务
处理注册、登录、个人资料和密码修改等用户相关的业务逻辑
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..config.settings import Settings
from ..core.database import DatabaseManager, fetch_dict, fetch_dicts
from ..core.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from ..core.logging import get_logger
from ..core.security import SecurityManager, validate_password_strength
from ..models.user import Role, User
from .audit_service import AuditService

_USER_COLUMNS = "id, email, role, created_at, updated_at"


class UserService:
    """用户服务"""

    def __init__(self, db: DatabaseManager, security: SecurityManager,
                 settings: Settings, logger=None):
        self.db = db
        self.security = security
        self.settings = settings
        self.logger = logger or get_logger(__name__)

    def register(self, email: str, password: str,
                 role: Role = Role.CUSTOMER) -> Tuple[User, str]:
        """
        注册新用户

        Returns:
            (用户, JWT token)

        Raises:
            InvalidArgumentError: 密码不满足强度要求
            ForbiddenError: 未开放管理员注册时请求 admin 角色
            ConflictError: 邮箱已被注册
        """
        role = Role(role)
        if role is Role.ADMIN and not self.settings.allow_admin_signup:
            raise ForbiddenError("Admin sign-up is disabled")
        validate_password_strength(password)

        email = self._normalize_email(email)
        password_hash = self.security.hash_password(password)
        user_id = str(uuid.uuid4())

        with self.db.transaction() as con:
            if self._find_by_email(con, email):
                raise ConflictError("Email already registered", details={"email": email})
            con.execute(
                "INSERT INTO users(id, email, password_hash, role) VALUES (?,?,?,?)",
                [user_id, email, password_hash, role.value],
            )
            AuditService.record(con, "user_register", user_id, user_id, {"role": role.value})
            user = self._load(con, user_id)

        self.logger.info("user_registered", user_id=user_id, role=role.value)
        return user, self._issue_token(user)

    def login(self, email: str, password: str) -> Tuple[User, str]:
        """邮箱和密码登录，两种失败返回相同的信息"""
        email = self._normalize_email(email)
        with self.db.snapshot() as con:
            row = self._find_by_email(con, email)

        if not row or not self.security.verify_password(password, row["password_hash"]):
            self.logger.info("login_failed", email=email)
            raise AuthenticationError("Invalid email or password")

        user = self._to_user(row)
        self.logger.info("user_logged_in", user_id=user.id)
        return user, self._issue_token(user)

    def get_profile(self, user_id: str) -> User:
        with self.db.snapshot() as con:
            return self._load(con, user_id)

    def update_profile(self, user_id: str, email: str) -> User:
        """更新邮箱，只有变更时才重新检查唯一性"""
        email = self._normalize_email(email)
        with self.db.transaction() as con:
            current = self._load(con, user_id)
            if email != current.email:
                if self._find_by_email(con, email):
                    raise ConflictError("Email already registered", details={"email": email})
                con.execute(
                    "UPDATE users SET email = ?, updated_at = ? WHERE id = ?",
                    [email, datetime.now(), user_id],
                )
                AuditService.record(con, "user_update_profile", user_id, user_id,
                                    {"old_email": current.email, "new_email": email})
            return self._load(con, user_id)

    def change_password(self, user_id: str, current_password: str,
                        new_password: str) -> None:
        with self.db.snapshot() as con:
            row = fetch_dict(con, "SELECT password_hash FROM users WHERE id = ?", [user_id])
        if not row:
            raise NotFoundError("user", user_id)
        if not self.security.verify_password(current_password, row["password_hash"]):
            raise AuthenticationError("Current password is incorrect")
        validate_password_strength(new_password)

        new_hash = self.security.hash_password(new_password)
        with self.db.transaction() as con:
            con.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                [new_hash, datetime.now(), user_id],
            )
            AuditService.record(con, "user_change_password", user_id, user_id)
        self.logger.info("password_changed", user_id=user_id)

    def list_users_by_role(self, role: Optional[Role] = None, offset: int = 0,
                           limit: int = 10) -> Tuple[List[User], int]:
        """按角色分页列出用户（管理员）"""
        where, params = "", []
        if role is not None:
            where, params = "WHERE role = ?", [Role(role).value]
        with self.db.snapshot() as con:
            total = con.execute(f"SELECT COUNT(*) FROM users {where}", params).fetchone()[0]
            rows = fetch_dicts(
                con,
                f"SELECT {_USER_COLUMNS} FROM users {where} ORDER BY created_at, id LIMIT ? OFFSET ?",
                params + [limit, offset],
            )
        return [self._to_user(r) for r in rows], total

    def ensure_user(self, con, email: str, password: str, role: Role) -> str:
        """在调用方事务中创建用户（已存在则跳过），返回用户ID"""
        row = self._find_by_email(con, email)
        if row:
            return row["id"]
        user_id = str(uuid.uuid4())
        con.execute(
            "INSERT INTO users(id, email, password_hash, role) VALUES (?,?,?,?)",
            [user_id, email, self.security.hash_password(password), Role(role).value],
        )
        return user_id

    def _issue_token(self, user: User) -> str:
        return self.security.create_jwt_token(user.id, user.email, Role(user.role))

    @staticmethod
    def _normalize_email(email: str) -> str:
        return str(email).strip().lower()

    @staticmethod
    def _find_by_email(con, email: str) -> Optional[Dict[str, Any]]:
        return fetch_dict(
            con,
            f"SELECT {_USER_COLUMNS}, password_hash FROM users WHERE email = ?",
            [email],
        )

    def _load(self, con, user_id: str) -> User:
        row = fetch_dict(con, f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", [user_id])
        if not row:
            raise NotFoundError("user", user_id)
        return self._to_user(row)

    @staticmethod
    def _to_user(row: Dict[str, Any]) -> User:
        data = {k: v for k, v in row.items() if k != "password_hash"}
        return User(**data)
