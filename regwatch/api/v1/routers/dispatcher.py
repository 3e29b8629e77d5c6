# regwatch/api/v1/routers/dispatcher.py
from typing import Any, Dict

from fastapi import APIRouter, Depends

from regwatch.core.ops.dispatcher_service import dispatcher_service
from regwatch.dependencies import require_service_token

router = APIRouter()


@router.post("/scheduled-poller-cron", tags=["Dispatcher"])
async def scheduled_poller_cron(
    _claims: Dict[str, Any] = Depends(require_service_token),
) -> Dict[str, Any]:
    """Run one dispatcher tick for the current UTC hour."""
    report = await dispatcher_service.dispatch()
    return report.to_response()
