"""
Bearer token helpers.

Tokens are HS256 JWTs carrying ``sub`` (user or provider id) and ``role``.
Issuing tokens belongs to an outer identity service; ``create_access_token``
exists for tooling and tests.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

import jwt
from jwt import PyJWTError

from .core.config import settings
from .core.exceptions import UnauthorizedException
from .principal import Principal, principal_for

logger = logging.getLogger(__name__)


def _secret_value() -> str:
    return settings.secret_key.get_secret_value()


def create_access_token(
    subject: str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Id of the user or provider the token speaks for
        role: ``customer``, ``provider`` or ``admin``
        expires_delta: Optional expiration time delta
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode: Dict[str, Any] = {"sub": subject, "role": role, "exp": expire}
    return cast(str, jwt.encode(to_encode, _secret_value(), algorithm=settings.jwt_algorithm))


def decode_access_token(token: str) -> Dict[str, Any]:
    payload = jwt.decode(token, _secret_value(), algorithms=[settings.jwt_algorithm])
    return cast(Dict[str, Any], payload)


def principal_from_token(token: str) -> Principal:
    """
    Raises:
        UnauthorizedException: If the token is invalid, expired or incomplete
    """
    try:
        payload = decode_access_token(token)
    except PyJWTError as exc:
        logger.info(f"Rejected bearer token: {exc}")
        raise UnauthorizedException("Could not validate credentials", code="INVALID_TOKEN")

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or not role:
        raise UnauthorizedException("Token is missing required claims", code="INVALID_TOKEN")
    try:
        return principal_for(str(role), str(subject))
    except ValueError:
        raise UnauthorizedException("Token role is not recognised", code="INVALID_TOKEN")
