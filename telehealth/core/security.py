from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from telehealth.core.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    """Sign a short-lived bearer token for `user_id`. Used by the auth service and tests."""
    ttl = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    claims = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "exp": datetime.now(UTC) + timedelta(minutes=ttl),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> int | None:
    """User id carried by a valid, unexpired access token; None for anything else."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
