from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from storefront.core.config import settings


class TokenError(Exception):
    pass


def create_access_token(subject: str, role: str, expires_minutes: int | None = None) -> str:
    """Mint a bearer token. Sessions are issued elsewhere; this exists for scripts and tests."""
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    claims = {"sub": subject, "role": role, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise TokenError("Invalid token") from exc
    if not claims.get("sub"):
        raise TokenError("Invalid token")
    return claims
