# regwatch/dependencies.py
"""
FastAPI dependencies shared by the v1 routers.

Service authentication:
    Worker and dispatcher routes depend on ``require_service_token``. With
    REQUIRE_SERVICE_AUTH=false the check is skipped (local development).

Usage:
    @router.post("/pollers/{worker_name}")
    async def run_poller(claims: dict = Depends(require_service_token)):
        ...
"""

import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from regwatch.config import settings
from regwatch.core.auth.service_token import service_token_service

logger = logging.getLogger("regwatch.dependencies")

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_service_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """
    Validate the dispatcher's bearer credential.

    Returns:
        Token claims, or an empty dict when service auth is disabled

    Raises:
        HTTPException: 401 if the token is missing, expired or invalid
        ConfigurationError: 500 if SERVICE_TOKEN_SECRET is not set
    """
    if not settings.require_service_auth:
        return {}

    if not credentials:
        raise _unauthorized("Missing authentication credentials")

    try:
        payload = service_token_service.verify(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")

    logger.debug(f"Service call authenticated for {payload.get('sub')}")
    return payload
