"""
Access tokens.

A token names the user, the role and, for pharmacy staff, the pharmacy the
holder acts for:

    {"sub": "pharmacist1", "user_id": 12, "role": "PHARMACIST", "pharmacy_id": 3, "exp": 1234567890}
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from pharmalink.app.core.config import settings
from pharmalink.app.models.user import User


def issue_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a bearer token for ``user``."""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims: Dict[str, Any] = {
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    if user.is_pharmacy_staff:
        claims["pharmacy_id"] = user.pharmacy_id
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verified claims, or None for a bad signature, malformed or expired token."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def remaining_lifetime(claims: Dict[str, Any]) -> int:
    """Whole seconds until the token expires, never less than one."""
    expires_at = claims.get("exp")
    if expires_at is None:
        return settings.access_token_expire_minutes * 60
    left = int(expires_at - datetime.now(timezone.utc).timestamp())
    return max(left, 1)
