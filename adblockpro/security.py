import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
import bcrypt
from jose import JWTError, jwt
from adblockpro.config import (
    JWT_SECRET,
    JWT_REFRESH_SECRET,
    JWT_ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    REFRESH_TOKEN_EXPIRE_DAYS,
    BCRYPT_ROUNDS,
)
from adblockpro.errors import InvalidToken

ACCESS = "access"
REFRESH = "refresh"

_SECRETS = {
    ACCESS: JWT_SECRET,
    REFRESH: JWT_REFRESH_SECRET,
}


def _create_token(user_id: int, kind: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user_id),
        "type": kind,
        "jti": secrets.token_hex(8),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(to_encode, _SECRETS[kind], algorithm=JWT_ALGORITHM)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create a short-lived JWT access token."""
    return _create_token(user_id, ACCESS, expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT refresh token, signed with its own secret."""
    return _create_token(user_id, REFRESH, expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))


def create_token_pair(user_id: int) -> dict:
    return {
        "token": create_access_token(user_id),
        "refreshToken": create_refresh_token(user_id),
    }


def verify_token(token: str, kind: str = ACCESS) -> int:
    """Return the user id carried by a token of the given kind.

    Raises InvalidToken on a bad signature, an expired token, a token of the
    other kind or a malformed subject.
    """
    if not token:
        raise InvalidToken()
    try:
        payload = jwt.decode(token, _SECRETS[kind], algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise InvalidToken()
    if payload.get("type") != kind:
        raise InvalidToken()
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidToken()


def password_strong_enough(password: str) -> bool:
    """Check if password meets security requirements."""
    if len(password) < 8:
        return False

    # Check for at least one uppercase, one lowercase, one digit
    if not re.search(r"[A-Z]", password):
        return False
    if not re.search(r"[a-z]", password):
        return False
    if not re.search(r"\d", password):
        return False

    return True


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed hash or a password bcrypt refuses (over 72 bytes)
        return False


def generate_token() -> str:
    """Random one-time token for email verification and password resets."""
    return secrets.token_hex(32)
