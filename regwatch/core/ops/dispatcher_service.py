# regwatch/core/ops/dispatcher_service.py
"""
Hourly dispatcher (scheduled-poller-cron).

Reads the current UTC hour, asks the schedule registry which workers are due
and invokes each due worker through its own HTTP endpoint with a freshly
minted service token. Workers that are not due (or are disabled) are
reported as skipped with the reason. A worker failure never fails the
dispatch; only an error in the dispatcher's own logic does.

Response body:
    {
        "success": true,
        "executionTime": 1234,          # milliseconds
        "currentHour": 6,
        "timestamp": "2025-01-01T06:00:00Z",
        "results": {"federalRegister": {"success": true, "message": "...", "recordsAdded": 3}, ...}
    }

Usage:
    from regwatch.core.ops.dispatcher_service import dispatcher_service

    report = await dispatcher_service.dispatch()
    return report.to_response()
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from regwatch.config import settings
from regwatch.core.auth.service_token import service_token_service
from regwatch.core.ops.schedule_registry import PollerEntry, get_registered_pollers
from regwatch.core.shared.http_retry import format_error

logger = logging.getLogger("regwatch.dispatcher")


@dataclass
class DispatchReport:
    """Aggregated outcome of one dispatcher tick."""

    current_hour: int
    timestamp: datetime
    execution_ms: int = 0
    results: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def invoked(self) -> List[str]:
        return [key for key, value in self.results.items() if not value.get("skipped")]

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "executionTime": self.execution_ms,
            "currentHour": self.current_hour,
            "timestamp": self.timestamp.isoformat() + "Z",
            "results": {
                key: {k: v for k, v in value.items() if k != "skipped"}
                for key, value in self.results.items()
            },
        }


def _skipped(message: str) -> Dict[str, Any]:
    return {"success": False, "message": message, "recordsAdded": 0, "skipped": True}


class DispatcherService:
    """Fans out one tick of the schedule to the due workers."""

    def worker_url(self, entry: PollerEntry) -> str:
        return f"{settings.worker_base_url.rstrip('/')}/api/v1/pollers/{entry.name}"

    async def invoke(
        self,
        client: httpx.AsyncClient,
        entry: PollerEntry,
        token: Optional[str],
    ) -> Dict[str, Any]:
        """
        POST to one worker and reduce its response to {success, message, recordsAdded}.

        Network errors and undecodable bodies are reported, never raised.
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        started = time.monotonic()
        try:
            response = await client.post(
                self.worker_url(entry),
                json=entry.request_body,
                headers=headers,
                timeout=entry.timeout_seconds,
            )
        except Exception as e:
            logger.error(f"Dispatch to {entry.name} failed: {format_error(e)}")
            return {"success": False, "message": f"Error: {format_error(e)}", "recordsAdded": 0}

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        message = data.get("message") or data.get("error") or (
            "Completed" if response.is_success else f"HTTP {response.status_code}"
        )
        records_added = data.get("recordsAdded") or data.get("totalInserted") or 0
        logger.info(
            f"{entry.name}: HTTP {response.status_code} in {time.monotonic() - started:.1f}s "
            f"({records_added} records)"
        )
        return {"success": response.is_success, "message": message, "recordsAdded": records_added}

    async def dispatch(
        self,
        now: Optional[datetime] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> DispatchReport:
        """
        Run one dispatcher tick.

        Args:
            now: Naive UTC time to dispatch for (default utcnow)
            client: httpx client to use (tests pass one with a mock transport)

        Raises:
            ConfigurationError: service auth is required and SERVICE_TOKEN_SECRET is unset
        """
        started = time.monotonic()
        now = now or datetime.utcnow()
        hour = now.hour
        report = DispatchReport(current_hour=hour, timestamp=now)
        disabled = {name.strip() for name in settings.disabled_pollers}

        due: List[PollerEntry] = []
        for entry in get_registered_pollers():
            if entry.name in disabled:
                report.results[entry.result_key] = _skipped("Skipped - disabled")
            elif entry.schedule.is_due(hour):
                due.append(entry)
            else:
                report.results[entry.result_key] = _skipped(
                    f"Skipped - runs {entry.schedule.describe()} (current: {hour})"
                )
                logger.debug(
                    f"{entry.name} not due at hour {hour}; next run {entry.schedule.next_run_after(now).isoformat()}"
                )

        logger.info(f"Dispatching hour {hour}: {', '.join(e.name for e in due) or 'nothing due'}")

        token = service_token_service.mint() if due and settings.require_service_auth else None

        owns_client = client is None
        if owns_client:
            client = httpx.AsyncClient()
        try:
            if settings.dispatch_concurrently:
                outcomes = await asyncio.gather(*(self.invoke(client, entry, token) for entry in due))
            else:
                outcomes = []
                for entry in due:
                    outcomes.append(await self.invoke(client, entry, token))
        finally:
            if owns_client:
                await client.aclose()

        for entry, outcome in zip(due, outcomes):
            report.results[entry.result_key] = outcome

        ordered = [e.result_key for e in get_registered_pollers()]
        report.results = {key: report.results[key] for key in ordered if key in report.results}
        report.execution_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Dispatch complete in {report.execution_ms}ms: "
            f"{sum(1 for key in report.invoked if report.results[key]['success'])}/{len(due)} workers succeeded"
        )
        return report


dispatcher_service = DispatcherService()
