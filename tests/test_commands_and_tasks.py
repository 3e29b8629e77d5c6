"""
Tests for the operator commands and the Celery dispatch task.
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from regwatch.core.commands import mint_service_token, run_poller
from regwatch.core.auth.service_token import service_token_service
from regwatch.core.ops.dispatcher_service import DispatchReport
from regwatch.tasks import dispatch_scheduled_pollers


class TestRunPollerCommand:
    """Test the run_poller command."""

    def test_parse_options(self):
        assert run_poller.parse_options(["stateCode=HI", "pollAll=true", "fullScan=False", "note=a=b"]) == {
            "stateCode": "HI",
            "pollAll": True,
            "fullScan": False,
            "note": "a=b",
        }

    def test_parse_options_rejects_bare_words(self):
        with pytest.raises(ValueError):
            run_poller.parse_options(["stateCode"])

    def test_list(self, capsys):
        assert run_poller.main(["--list"]) == 0
        out = capsys.readouterr().out
        assert "federal-register-poller" in out
        assert "every hour" in out

    @pytest.mark.asyncio
    async def test_unknown_poller(self):
        assert await run_poller.run_poller("no-such-poller") == 1


class TestMintServiceTokenCommand:
    """Test the mint_service_token command."""

    def test_prints_verifiable_token(self, capsys):
        assert mint_service_token.main(["--subject", "ops", "--ttl", "60"]) == 0
        token = capsys.readouterr().out.strip()
        assert service_token_service.verify(token)["sub"] == "ops"


class TestDispatchTask:
    """Test the Celery beat task wrapper."""

    def test_returns_dispatch_response(self):
        report = DispatchReport(
            current_hour=3,
            timestamp=datetime(2024, 1, 1, 3, 0),
            results={
                "federalRegister": {"success": True, "message": "ok", "recordsAdded": 1},
                "kavaPoller": {"success": False, "message": "Skipped - runs daily at 5 UTC (current: 3)",
                               "recordsAdded": 0, "skipped": True},
            },
        )
        with patch("regwatch.tasks.dispatcher_service.dispatch", AsyncMock(return_value=report)):
            result = dispatch_scheduled_pollers()

        assert result["success"] is True
        assert result["currentHour"] == 3
        assert set(result["results"]) == {"federalRegister", "kavaPoller"}

    def test_dispatch_error_is_returned(self):
        with patch("regwatch.tasks.dispatcher_service.dispatch", AsyncMock(side_effect=RuntimeError("boom"))):
            result = dispatch_scheduled_pollers()

        assert result == {"success": False, "error": "boom"}
