from dataclasses import dataclass
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core import security
from app.core.exceptions import AuthenticationError

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Subject:
    """Authenticated caller as asserted by the identity provider"""
    id: str
    role: Optional[str] = None


async def get_current_subject(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Subject:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError(message="Missing bearer token")

    payload = security.decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise AuthenticationError(message="Could not validate credentials")

    return Subject(id=str(payload["sub"]), role=payload.get("role"))
