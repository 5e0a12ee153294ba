import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import Settings, settings
from ..db import get_db
from ..errors import Unauthenticated, Unauthorized
from ..models.models import User


ROLES = ("admin", "officer", "member")
ELEVATED_ROLES = frozenset({"admin", "officer"})
ADMIN_ROLES = frozenset({"admin"})

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthConfig:
    secret: str
    algorithm: str = "HS256"
    ttl_seconds: int = 60 * 60 * 24 * 30

    @classmethod
    def from_settings(cls, s: Settings) -> "AuthConfig":
        return cls(secret=s.jwt_secret, algorithm=s.jwt_algorithm, ttl_seconds=s.jwt_ttl_seconds)


auth_config = AuthConfig.from_settings(settings)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        # unknown or malformed hash
        return False


def create_access_token(user_id: str, config: Optional[AuthConfig] = None) -> str:
    config = config or auth_config
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=config.ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, config.secret, algorithm=config.algorithm)


def decode_token(token: str, config: Optional[AuthConfig] = None) -> dict:
    config = config or auth_config
    try:
        return jwt.decode(token, config.secret, algorithms=[config.algorithm])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")


def authenticate(db: Session, token: Optional[str], config: Optional[AuthConfig] = None) -> User:
    """Resolve a bearer token to an active user or raise Unauthenticated."""
    if not token:
        raise Unauthenticated("No token, authorization denied")
    payload = decode_token(token, config)
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise Unauthenticated("Invalid subject")
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise Unauthenticated("Token is not valid")
    return user


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> User:
    return authenticate(db, creds.credentials if creds else None)


def is_elevated(role: Optional[str]) -> bool:
    return role in ELEVATED_ROLES


def owns_or_elevated(principal: User, owner_id) -> bool:
    if is_elevated(principal.role):
        return True
    return owner_id is not None and str(principal.id) == str(owner_id)


def ensure_owner_or_elevated(principal: User, owner_id, detail: str = "Not authorized for this action") -> None:
    if not owns_or_elevated(principal, owner_id):
        raise Unauthorized(detail)


def require_roles(*allowed_roles: str):
    allowed = frozenset(allowed_roles)

    def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise Unauthorized("Not authorized for this action")
        return user

    return _dep


require_elevated = require_roles(*ELEVATED_ROLES)
require_admin = require_roles(*ADMIN_ROLES)
