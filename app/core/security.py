from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import logging

import jwt

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(subject: str, data: Optional[Dict[str, Any]] = None) -> str:
    """Create JWT access token (tokens are normally minted by the identity provider)"""
    to_encode = dict(data or {})
    now = datetime.now(timezone.utc)
    to_encode.update({
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "iat": now,
        "sub": subject,
    })
    if settings.JWT_ISSUER:
        to_encode.setdefault("iss", settings.JWT_ISSUER)
    if settings.JWT_AUDIENCE:
        to_encode.setdefault("aud", settings.JWT_AUDIENCE)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and validate JWT token"""
    options = {"require": ["exp", "sub"]}
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        return None
