from datetime import datetime, timezone
from typing import Optional

from jose import jwt, JWTError


def token_expiry(token: str) -> Optional[datetime]:
    """Lee el claim ``exp`` sin verificar la firma (la firma la valida el backend).

    Devuelve None si el token no es un JWT o no trae ``exp``.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    exp = claims.get("exp")
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(int(exp), tz=timezone.utc)
    except (TypeError, ValueError):
        return None


def is_token_expired(token: str, now: Optional[datetime] = None) -> bool:
    expires_at = token_expiry(token)
    if expires_at is None:
        return False
    return expires_at <= (now or datetime.now(timezone.utc))
