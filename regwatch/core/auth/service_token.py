# regwatch/core/auth/service_token.py
"""
Short-lived bearer credentials for dispatcher -> worker calls.

The dispatcher mints one token per run and sends it as
``Authorization: Bearer <token>`` to every worker endpoint; workers (and the
dispatcher route itself) verify it with ``require_service_token``.

Token claims:
    - sub: Caller identity (default "scheduled-poller-cron")
    - aud: SERVICE_TOKEN_AUDIENCE
    - iss: "regwatch"
    - type: "service"
    - iat / exp: Issued at / expiry (SERVICE_TOKEN_TTL_SECONDS)

Usage:
    from regwatch.core.auth.service_token import service_token_service

    token = service_token_service.mint()
    payload = service_token_service.verify(token)

Dependencies:
    - PyJWT for HS256 signing and validation
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt

from regwatch.config import settings
from regwatch.core.errors import ConfigurationError

ISSUER = "regwatch"
TOKEN_TYPE = "service"
ALGORITHM = "HS256"
DEFAULT_SUBJECT = "scheduled-poller-cron"


class ServiceTokenService:
    """Mints and verifies HS256 service tokens."""

    def __init__(self):
        self._logger = logging.getLogger("regwatch.auth")

    @property
    def secret(self) -> str:
        if not settings.service_token_secret:
            raise ConfigurationError.for_missing("SERVICE_TOKEN_SECRET", status_code=500)
        return settings.service_token_secret

    def mint(
        self,
        subject: str = DEFAULT_SUBJECT,
        ttl_seconds: Optional[int] = None,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create a signed service token.

        Args:
            subject: Identity of the caller
            ttl_seconds: Lifetime (default SERVICE_TOKEN_TTL_SECONDS)
            additional_claims: Extra claims merged into the payload

        Raises:
            ConfigurationError: SERVICE_TOKEN_SECRET is not set
        """
        now = datetime.utcnow()
        ttl = ttl_seconds if ttl_seconds is not None else settings.service_token_ttl_seconds
        claims = {
            "sub": subject,
            "aud": settings.service_token_audience,
            "iss": ISSUER,
            "type": TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(seconds=ttl),
        }
        if additional_claims:
            claims.update(additional_claims)

        token = jwt.encode(claims, self.secret, algorithm=ALGORITHM)
        self._logger.debug(f"Minted service token for {subject} (expires in {ttl}s)")
        return token

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a service token.

        Raises:
            jwt.ExpiredSignatureError: Token has expired
            jwt.InvalidTokenError: Bad signature, audience, issuer or type
            ConfigurationError: SERVICE_TOKEN_SECRET is not set
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                audience=settings.service_token_audience,
                issuer=ISSUER,
            )
        except jwt.ExpiredSignatureError:
            self._logger.warning("Service token has expired")
            raise
        except jwt.InvalidTokenError as e:
            self._logger.warning(f"Invalid service token: {e}")
            raise

        if payload.get("type") != TOKEN_TYPE:
            raise jwt.InvalidTokenError("Token is not a service token")
        return payload


service_token_service = ServiceTokenService()
