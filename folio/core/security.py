"""
Password hashing and access tokens
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from folio.config import settings

ALGORITHM = "HS256"


class TokenError(Exception):
    """Token is malformed, expired or signed with another secret."""


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.password_hash_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def _secret() -> str:
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET is not configured")
    return settings.jwt_secret


def create_access_token(user_id: str, email: str, role: str) -> Dict[str, Any]:
    """Return the encoded token with its jti and lifetime in seconds."""
    now = datetime.now(timezone.utc)
    expires_in = settings.jwt_expires_hours * 3600
    jti = uuid.uuid4().hex
    claims = {
        "sub": user_id,
        "email": email,
        "role": role,
        "iss": settings.jwt_issuer,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "jti": jti,
    }
    token = jwt.encode(claims, _secret(), algorithm=ALGORITHM)
    return {"access_token": token, "jti": jti, "expires_in": expires_in}


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(
            token,
            _secret(),
            algorithms=[ALGORITHM],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "sub", "jti"]},
        )
    except jwt.PyJWTError as e:
        raise TokenError(str(e)) from e
