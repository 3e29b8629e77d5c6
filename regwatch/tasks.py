"""
Celery tasks for the hourly dispatch trigger.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from celery import shared_task

from .core.ops.dispatcher_service import dispatcher_service
from .core.shared.database_service import database_service
from .core.shared.progress_service import progress_service


async def _expire_stale_locks_async(source_name: Optional[str] = None) -> int:
    async with database_service.get_session() as session:
        return await progress_service.expire_stale_locks(session, source_name=source_name)


async def _dispatch_async() -> Dict[str, Any]:
    logger = logging.getLogger("regwatch.tasks")
    if database_service.is_configured:
        try:
            expired = await _expire_stale_locks_async()
            if expired:
                logger.info(f"Expired {expired} stale lock(s) before dispatch")
        except Exception as e:
            logger.warning(f"Stale lock sweep failed, dispatching anyway: {e}")
        finally:
            await database_service.close()

    report = await dispatcher_service.dispatch()
    return report.to_response()


@shared_task(bind=True, name="regwatch.tasks.dispatch_scheduled_pollers")
def dispatch_scheduled_pollers(self) -> Dict[str, Any]:
    """
    Run one dispatcher tick for the current UTC hour.

    Sweeps stale running locks first so a crashed worker never blocks its
    next scheduled run, then fans out to the due pollers.

    Returns:
        The dispatcher response body
    """
    logger = logging.getLogger("regwatch.tasks")
    logger.info("Starting scheduled poller dispatch")

    try:
        result = asyncio.run(_dispatch_async())
        invoked = [key for key, value in result["results"].items() if not value["message"].startswith("Skipped")]
        logger.info(f"Dispatch complete in {result['executionTime']}ms: invoked {', '.join(invoked) or 'none'}")
        return result
    except Exception as e:
        logger.error(f"Scheduled dispatch failed: {e}", exc_info=True)
        return {"success": False, "error": str(e)}


@shared_task(bind=True, name="regwatch.tasks.expire_stale_locks")
def expire_stale_locks(self, source_name: Optional[str] = None) -> Dict[str, Any]:
    """Mark running progress rows older than LOCK_TTL_MINUTES as failed."""
    logger = logging.getLogger("regwatch.tasks")

    async def _run() -> int:
        try:
            return await _expire_stale_locks_async(source_name)
        finally:
            await database_service.close()

    try:
        expired = asyncio.run(_run())
        logger.info(f"Stale lock sweep complete: {expired} row(s) expired")
        return {"status": "completed", "expired": expired}
    except Exception as e:
        logger.error(f"Stale lock sweep failed: {e}", exc_info=True)
        return {"status": "failed", "error": str(e)}
