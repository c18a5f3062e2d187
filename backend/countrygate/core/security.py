"""Authentication utilities — passwords, JWT bearer tokens, API key material."""

from datetime import datetime, timedelta, timezone
from typing import Optional
import secrets
import hashlib
import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from countrygate.core.config import settings
from countrygate.core.database import get_db
from countrygate.core.errors import AuthenticationFailure
from countrygate.models.user import User

logger = logging.getLogger("countrygate.auth")

# ─── Password hashing ───

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ─── OAuth2 scheme (JWT bearer) ───

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

# ─── Constants ───

API_KEY_PREFIX = "cg_"


# ─── Password helpers ───

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ─── JWT helpers ───

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


# ─── API-key helpers ───

def generate_api_key() -> tuple[str, str, str, str]:
    """Return (raw_key, key_prefix, key_last4, key_hash)."""
    raw = f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    return raw, raw[:10], raw[-4:], hash_api_key(raw)


def hash_api_key(raw: str) -> str:
    return hashlib.sha256(raw.encode()).hexdigest()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ─── Dependency: current user from JWT ───

def _get_user_from_token(token: str, db: Session) -> Optional[User]:
    try:
        payload = decode_access_token(token)
        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None
        user_id = int(user_id_str)
    except (JWTError, ValueError):
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if user and user.is_active:
        return user
    return None


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Authenticate the dashboard user via ``Authorization: Bearer <jwt>``."""
    if not token:
        raise AuthenticationFailure("Authentication token is required")

    user = _get_user_from_token(token, db)
    if user is None:
        logger.debug("Rejected bearer token")
        raise AuthenticationFailure("Invalid or expired token")
    return user
