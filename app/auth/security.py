"""Password hashing and access token helpers.

Secrets are bcrypt hashes produced with a fixed work factor. ``verify_password``
separates a wrong password (``False``) from a broken secret or primitive
(``HashingFailure``), so callers can answer 401 for the former and 500 for the
latter.
"""
import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import jwt

from app.config import settings
from app.core.exceptions import HashingFailure

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def get_password_hash(password: str) -> str:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise HashingFailure(f"password exceeds {MAX_PASSWORD_BYTES} bytes", operation="hash_password")
    try:
        hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    except (ValueError, TypeError) as exc:
        raise HashingFailure("password hashing failed", operation="hash_password") from exc
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        # Could never have been hashed, so it cannot match.
        return False
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except (ValueError, TypeError) as exc:
        logger.warning("Stored password hash could not be read")
        raise HashingFailure("password verification failed", operation="verify_password") from exc


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": subject, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
