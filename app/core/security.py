"""Access tokens signed by this service for the ``local`` identity provider."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import settings

TOKEN_TYPE = "access"


def create_access_token(
    account_id: str,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Sign a token asserting an account id and, optionally, its verified email.

    Args:
        account_id: Stored as ``sub``
        email: Verified address, required later for registration
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims: dict[str, Any] = {
        "sub": account_id,
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid, unexpired access token with a string subject, else None."""
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if claims.get("type") != TOKEN_TYPE or not isinstance(claims.get("sub"), str):
        return None
    return claims
