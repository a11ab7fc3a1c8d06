"""
安全相关功能
JWT 签发与校验、密码哈希、密码强度校验，以及 FastAPI 认证依赖

角色只在认证依赖中从 token 解析一次，之后以 Principal 在请求中传递。
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from .exceptions import AuthenticationError, ForbiddenError, InvalidArgumentError
from ..config.settings import Settings
from ..models.user import Principal, Role

MIN_PASSWORD_LENGTH = 12
_SPECIAL_RE = re.compile(r"[^A-Za-z0-9]")


def password_policy_violations(password: str) -> List[str]:
    """返回密码不满足的规则列表，空列表表示通过"""
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"at least {MIN_PASSWORD_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        problems.append("an uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("a lowercase letter")
    if not re.search(r"[0-9]", password):
        problems.append("a digit")
    if not _SPECIAL_RE.search(password):
        problems.append("a special character")
    return problems


def validate_password_strength(password: str) -> None:
    problems = password_policy_violations(password)
    if problems:
        raise InvalidArgumentError(
            "Password must contain " + ", ".join(problems),
            details={"missing": problems},
        )


class SecurityManager:
    """安全管理器"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.password_hash_rounds,
        )

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        return self.pwd_context.verify(password, password_hash)

    def create_jwt_token(self, user_id: str, email: str, role: Role,
                         additional_claims: Dict[str, Any] = None) -> str:
        """创建JWT token"""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "role": Role(role).value,
            "iat": now,
            "exp": now + timedelta(hours=self.settings.jwt_expire_hours),
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, self.settings.jwt_secret_key,
                          algorithm=self.settings.jwt_algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        """解码JWT token"""
        try:
            return jwt.decode(token, self.settings.jwt_secret_key,
                              algorithms=[self.settings.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

    def principal_from_token(self, token: str) -> Principal:
        """从 token 解析出带类型角色的 Principal"""
        payload = self.decode_jwt_token(token)
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Token missing subject")
        try:
            role = Role(payload.get("role"))
        except ValueError:
            raise AuthenticationError("Token carries an unknown role")
        return Principal(user_id=user_id, email=payload.get("email", ""), role=role)


_bearer = HTTPBearer(auto_error=False)


def get_security_manager(request: Request) -> SecurityManager:
    return request.app.state.security


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    security: SecurityManager = Depends(get_security_manager),
) -> Principal:
    """从Authorization header中提取并验证调用方"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return security.principal_from_token(credentials.credentials)


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """检查管理员权限"""
    if not principal.is_admin:
        raise ForbiddenError("Admin role required")
    return principal
