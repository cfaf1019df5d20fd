import hashlib
import secrets
import warnings
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

import jwt
from passlib.context import CryptContext

from campushire.core.config import settings

# Suppress bcrypt version warnings
warnings.filterwarnings("ignore", message=".*__about__.*")
warnings.filterwarnings("ignore", category=UserWarning, module="passlib")

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__default_rounds=12
)


class AuthenticationError(Exception):
    """Raised when a token cannot be decoded or is missing its subject"""
    pass


def _truncate(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    if len(password.encode("utf-8")) > 72:
        password = password.encode("utf-8")[:72].decode("utf-8", errors="ignore")
    return password


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(_truncate(plain_password), hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(_truncate(password))


def create_access_token(
    subject: Any,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None
) -> str:
    """Create a signed JWT whose subject is the user id"""
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(subject),
        "iat": now,
        "exp": expire,
        "type": "access",
        **(additional_claims or {})
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT, raising AuthenticationError on any failure"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError(f"Token expired: {e}")
    except jwt.PyJWTError as e:
        raise AuthenticationError(f"Invalid token: {e}")

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token - missing subject")
    return payload


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_reset_token() -> Tuple[str, str, datetime]:
    """Return (raw token, stored hash, expiry) for a password reset"""
    token = secrets.token_hex(32)
    expires_at = datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    return token, hash_reset_token(token), expires_at
