"""
Run one poller against the configured store and print its JSON result.

Useful for backfills and for debugging a single source without going through
the dispatcher or the HTTP route. The run takes the same per-source lock as
a scheduled run, so it is refused (exit code 2) while another run is live.

Usage:
    python -m regwatch.core.commands.run_poller federal-register-poller
    python -m regwatch.core.commands.run_poller kava-poller --option stateCode=HI
    python -m regwatch.core.commands.run_poller --list
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def parse_options(pairs: List[str]) -> Dict[str, Any]:
    """Turn ``key=value`` pairs into request options (true/false become booleans)."""
    options: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got '{pair}'")
        lowered = value.lower()
        options[key] = True if lowered == "true" else False if lowered == "false" else value
    return options


async def run_poller(
    worker_name: str,
    session_id: Optional[str] = None,
    source_name: Optional[str] = None,
    options: Optional[Dict[str, Any]] = None,
) -> int:
    from regwatch.core.errors import ConfigurationError
    from regwatch.core.ops.schedule_registry import get_poller_entry, get_registered_pollers
    from regwatch.core.shared.database_service import database_service

    entry = get_poller_entry(worker_name)
    if entry is None:
        names = ", ".join(e.name for e in get_registered_pollers())
        logger.error(f"Unknown poller '{worker_name}'. Registered: {names}")
        return 1

    try:
        await database_service.init_db()
        async with database_service.get_session() as session:
            result = await entry.create().run(
                session, session_id=session_id, source_name=source_name, options=options
            )
    except ConfigurationError as e:
        logger.error(e.message)
        return 1
    finally:
        await database_service.close()

    print(json.dumps(result.to_response(), indent=2, default=str))
    if result.http_status == 409:
        return 2
    return 0 if result.http_status < 300 else 1


def list_pollers() -> int:
    from regwatch.core.ops.schedule_registry import get_registered_pollers

    for entry in get_registered_pollers():
        print(f"{entry.name:28} {entry.poller_cls.source:20} {entry.schedule.describe()}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run one regwatch poller")
    parser.add_argument("worker", nargs="?", help="Poller route name, e.g. federal-register-poller")
    parser.add_argument("--session-id", help="Correlation id stored on the progress row")
    parser.add_argument("--source-name", help="Lock domain override")
    parser.add_argument(
        "--option", action="append", default=[], metavar="KEY=VALUE",
        help="Request option passed to the poller (repeatable)",
    )
    parser.add_argument("--list", action="store_true", help="List registered pollers and exit")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.list:
        return list_pollers()
    if not args.worker:
        parser.error("worker is required unless --list is given")

    try:
        options = parse_options(args.option)
    except ValueError as e:
        parser.error(str(e))

    return asyncio.run(run_poller(args.worker, args.session_id, args.source_name, options))


if __name__ == "__main__":
    sys.exit(main())
