# regwatch/api/v1/routers/pollers.py
"""
Poller worker endpoints.

    POST /api/v1/pollers/{worker_name}
        Body (all optional, empty or non-JSON bodies are accepted):
            sessionId   correlation id stored on the progress row
            sourceName  lock domain override
            any other key is passed to the poller as a request option
            (stateCode, pollAll, fullScan)

        200 clean run, 207 run completed with recorded errors,
        409 another run holds the source lock, 500 run failed,
        400 required API key missing, 404 unknown worker.

    GET /api/v1/pollers
        Registered pollers with their schedules.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from regwatch.api.v1.models import PollerInfo, PollerListResponse
from regwatch.core.ops.schedule_registry import get_poller_entry, get_registered_pollers
from regwatch.database.base import get_db
from regwatch.dependencies import require_service_token

logger = logging.getLogger("regwatch.api.pollers")

router = APIRouter()

RESERVED_KEYS = {"sessionId", "sourceName"}


async def _read_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = await request.json()
    except ValueError:
        logger.debug("Ignoring non-JSON request body")
        return {}
    return body if isinstance(body, dict) else {}


@router.get("/pollers", response_model=PollerListResponse, tags=["Pollers"])
async def list_pollers():
    """List registered pollers and their schedules."""
    entries = get_registered_pollers()
    return PollerListResponse(
        pollers=[PollerInfo(**entry.as_dict()) for entry in entries],
        total=len(entries),
    )


@router.post("/pollers/{worker_name}", tags=["Pollers"])
async def run_poller(
    worker_name: str,
    request: Request,
    _claims: Dict[str, Any] = Depends(require_service_token),
    db: AsyncSession = Depends(get_db),
):
    """Run one poller synchronously and return its result."""
    entry = get_poller_entry(worker_name)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Unknown poller: {worker_name}")

    body = await _read_body(request)
    options = {key: value for key, value in body.items() if key not in RESERVED_KEYS}

    poller = entry.create()
    result = await poller.run(
        db,
        session_id=body.get("sessionId"),
        source_name=body.get("sourceName"),
        options=options,
    )
    return JSONResponse(status_code=result.http_status, content=result.to_response())
