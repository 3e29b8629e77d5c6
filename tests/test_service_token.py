"""
Tests for service token minting and verification.
"""

from datetime import datetime, timedelta

import jwt
import pytest

from regwatch.config import settings
from regwatch.core.auth.service_token import ALGORITHM, ISSUER, service_token_service
from regwatch.core.errors import ConfigurationError


class TestServiceToken:
    """Test HS256 service tokens."""

    def test_mint_and_verify(self):
        token = service_token_service.mint(subject="operator")

        payload = service_token_service.verify(token)

        assert payload["sub"] == "operator"
        assert payload["iss"] == ISSUER
        assert payload["aud"] == settings.service_token_audience
        assert payload["type"] == "service"
        assert payload["exp"] - payload["iat"] == settings.service_token_ttl_seconds

    def test_additional_claims(self):
        token = service_token_service.mint(additional_claims={"run": "backfill"})
        assert service_token_service.verify(token)["run"] == "backfill"

    def test_expired_token(self):
        token = service_token_service.mint(ttl_seconds=-10)

        with pytest.raises(jwt.ExpiredSignatureError):
            service_token_service.verify(token)

    def test_wrong_audience(self):
        now = datetime.utcnow()
        token = jwt.encode(
            {"sub": "x", "aud": "someone-else", "iss": ISSUER, "type": "service",
             "iat": now, "exp": now + timedelta(minutes=5)},
            settings.service_token_secret,
            algorithm=ALGORITHM,
        )

        with pytest.raises(jwt.InvalidAudienceError):
            service_token_service.verify(token)

    def test_wrong_secret(self):
        now = datetime.utcnow()
        token = jwt.encode(
            {"sub": "x", "aud": settings.service_token_audience, "iss": ISSUER, "type": "service",
             "iat": now, "exp": now + timedelta(minutes=5)},
            "not-the-secret-but-long-enough-for-hs256",
            algorithm=ALGORITHM,
        )

        with pytest.raises(jwt.InvalidSignatureError):
            service_token_service.verify(token)

    def test_non_service_token_rejected(self):
        token = service_token_service.mint(additional_claims={"type": "user"})

        with pytest.raises(jwt.InvalidTokenError):
            service_token_service.verify(token)

    def test_missing_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "service_token_secret", None)

        with pytest.raises(ConfigurationError) as exc:
            service_token_service.mint()

        assert exc.value.status_code == 500
        assert exc.value.missing == ["SERVICE_TOKEN_SECRET"]
