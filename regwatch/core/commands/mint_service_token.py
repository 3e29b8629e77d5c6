"""
Print a service bearer token for calling poller or dispatcher routes by hand.

Usage:
    python -m regwatch.core.commands.mint_service_token
    python -m regwatch.core.commands.mint_service_token --subject ops --ttl 900

    curl -X POST -H "Authorization: Bearer $(python -m regwatch.core.commands.mint_service_token)" \\
        http://localhost:8000/api/v1/pollers/kava-poller
"""

import argparse
import logging
import sys
from typing import List, Optional

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Mint a regwatch service token")
    parser.add_argument("--subject", default="operator", help="Token subject (default: operator)")
    parser.add_argument("--ttl", type=int, default=None, help="Lifetime in seconds (default: SERVICE_TOKEN_TTL_SECONDS)")
    args = parser.parse_args(argv)

    from regwatch.core.auth.service_token import service_token_service
    from regwatch.core.errors import ConfigurationError

    try:
        token = service_token_service.mint(subject=args.subject, ttl_seconds=args.ttl)
    except ConfigurationError as e:
        logger.error(e.message)
        return 1

    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
