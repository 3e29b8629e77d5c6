"""
Exceptions shared across the ingestion service.
"""

from typing import List, Optional


class ConfigurationError(Exception):
    """
    Raised when required configuration is missing.

    Pollers raise this before touching the lock table or any source API so the
    caller gets a specific message instead of a silent no-op. ``status_code``
    is 400 for missing per-source API keys and 500 for missing store or
    service credentials.
    """

    def __init__(self, message: str, missing: Optional[List[str]] = None, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.missing = missing or []
        self.status_code = status_code

    @classmethod
    def for_missing(cls, *names: str, status_code: int = 400) -> "ConfigurationError":
        joined = ", ".join(names)
        return cls(
            f"Missing required environment variable: {joined}",
            missing=list(names),
            status_code=status_code,
        )
