# barberbook/api/dependencies/auth.py
"""
Authentication and role dependencies.

Every protected route resolves a ``Principal`` from the bearer token. Role
checks happen here; ownership checks and the provider subscription gate
live in the services because they depend on the resource being touched.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...auth import principal_from_token
from ...core.exceptions import ForbiddenException, UnauthorizedException
from ...principal import CustomerPrincipal, Principal, ProviderPrincipal

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """
    Raises:
        UnauthorizedException: When no valid bearer token is supplied
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Not authenticated", code="NOT_AUTHENTICATED")
    return principal_from_token(credentials.credentials)


def get_current_customer(
    principal: Principal = Depends(get_current_principal),
) -> CustomerPrincipal:
    if not isinstance(principal, CustomerPrincipal):
        raise ForbiddenException("Customer access required", code="CUSTOMER_REQUIRED")
    return principal


def get_current_provider(
    principal: Principal = Depends(get_current_principal),
) -> ProviderPrincipal:
    if not isinstance(principal, ProviderPrincipal):
        raise ForbiddenException("Provider access required", code="PROVIDER_REQUIRED")
    return principal
