"""Acting-user resolution from bearer tokens issued by the identity provider."""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import settings
from .domain_errors import DomainError
from .services.event_builder import Actor

logger = logging.getLogger(__name__)

# Bearer token scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(code: str, message: str) -> DomainError:
    return DomainError(code=code, http_status=401, message=message)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT access token."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        logger.info("auth.invalid_token")
        raise _unauthorized("AUTH_INVALID_TOKEN", "Could not validate credentials")


def actor_from_claims(payload: dict) -> Actor:
    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("AUTH_INVALID_TOKEN", "Token has no subject")
    name = (payload.get("name") or "").strip() or payload.get("email") or "Unknown"
    return Actor(id=str(subject), name=name, email=payload.get("email"))


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Actor:
    """Resolve the acting user for the request."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("AUTH_REQUIRED", "Auth required")
    return actor_from_claims(decode_token(credentials.credentials))
