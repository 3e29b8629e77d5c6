"""
Central registry for poller workers and their dispatch schedules.

Each poller class is registered via the ``@register_poller`` decorator, which
captures the class together with its route name, the key used in the
dispatcher's result map, and a ``WorkerSchedule``. The dispatcher consumes the
registry through one generic ``is_due(hour)`` predicate instead of per-worker
branches.

Usage::

    from regwatch.core.ops.schedule_registry import WorkerSchedule, register_poller

    @register_poller(
        name="kava-poller",
        result_key="kavaPoller",
        display_name="Kava Regulatory Poller",
        schedule=WorkerSchedule(every_n_hours=24, offset_hours=5),
        order=60,
    )
    class KavaPoller(AgencyFeedPoller):
        ...

    # At runtime
    from regwatch.core.ops.schedule_registry import discover_pollers, get_registered_pollers
    discover_pollers()
    for entry in get_registered_pollers():
        if entry.schedule.is_due(hour):
            ...
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type

from croniter import croniter

logger = logging.getLogger("regwatch.ops.schedule_registry")

# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkerSchedule:
    """
    Hour-of-day cadence for one worker.

    A worker is due at every UTC hour ``h`` where
    ``(h - offset_hours) % every_n_hours == 0``, or at every tick when
    ``always`` is set.
    """

    every_n_hours: int = 24
    offset_hours: int = 0
    always: bool = False

    def __post_init__(self):
        if not 1 <= self.every_n_hours <= 24:
            raise ValueError(f"every_n_hours must be between 1 and 24, got {self.every_n_hours}")
        if not 0 <= self.offset_hours < 24:
            raise ValueError(f"offset_hours must be between 0 and 23, got {self.offset_hours}")

    @property
    def hours(self) -> Tuple[int, ...]:
        if self.always:
            return tuple(range(24))
        return tuple(h for h in range(24) if (h - self.offset_hours) % self.every_n_hours == 0)

    def is_due(self, hour: int) -> bool:
        return self.always or hour in self.hours

    def describe(self) -> str:
        if self.always or self.every_n_hours == 1:
            return "every hour"
        hours = ",".join(str(h) for h in self.hours)
        if len(self.hours) == 1:
            return f"daily at {hours} UTC"
        return f"every {self.every_n_hours} hours at {hours} UTC"

    @property
    def cron_expression(self) -> str:
        if self.always:
            return "0 * * * *"
        return f"0 {','.join(str(h) for h in self.hours)} * * *"

    def next_run_after(self, now: datetime) -> datetime:
        """Next scheduled tick strictly after ``now`` (naive UTC)."""
        return croniter(self.cron_expression, now).get_next(datetime)


EVERY_TICK = WorkerSchedule(every_n_hours=1, always=True)

# ---------------------------------------------------------------------------
# Registry data structures
# ---------------------------------------------------------------------------


@dataclass
class PollerEntry:
    """A registered poller class together with its dispatch metadata."""

    poller_cls: Type[Any]
    name: str
    result_key: str
    display_name: str
    schedule: WorkerSchedule
    timeout_seconds: float = 150.0
    request_body: Dict[str, Any] = field(default_factory=dict)
    order: int = 100

    def create(self, **kwargs: Any) -> Any:
        """Instantiate the poller (kwargs pass through, e.g. an httpx transport)."""
        return self.poller_cls(**kwargs)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "result_key": self.result_key,
            "source": getattr(self.poller_cls, "source", None),
            "schedule": self.schedule.describe(),
            "cron_expression": self.schedule.cron_expression,
            "hours": list(self.schedule.hours),
            "timeout_seconds": self.timeout_seconds,
        }


_registry: Dict[str, PollerEntry] = {}
_discovered: bool = False


# ---------------------------------------------------------------------------
# @register_poller decorator
# ---------------------------------------------------------------------------


def register_poller(
    name: str,
    result_key: str,
    schedule: WorkerSchedule,
    display_name: str = "",
    timeout_seconds: float = 150.0,
    request_body: Optional[Dict[str, Any]] = None,
    order: int = 100,
):
    """Decorator that registers a poller class and its schedule.

    Also sets ``cls.name`` so the poller knows its own route name.
    """

    def decorator(cls):
        cls.name = name
        _registry[name] = PollerEntry(
            poller_cls=cls,
            name=name,
            result_key=result_key,
            display_name=display_name or name,
            schedule=schedule,
            timeout_seconds=timeout_seconds,
            request_body=request_body or {},
            order=order,
        )
        return cls

    return decorator


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_poller_entry(name: str) -> Optional[PollerEntry]:
    discover_pollers()
    return _registry.get(name)


def get_registered_pollers() -> List[PollerEntry]:
    """All registered pollers in dispatch order."""
    discover_pollers()
    return sorted(_registry.values(), key=lambda entry: (entry.order, entry.name))


def discover_pollers() -> None:
    """Import connector modules so that ``@register_poller`` decorators fire.

    Safe to call multiple times; subsequent calls are no-ops.
    """
    global _discovered
    if _discovered:
        return
    import regwatch.connectors  # noqa: F401

    _discovered = True

    logger.debug(
        "Discovered %d pollers: %s",
        len(_registry),
        ", ".join(_registry.keys()),
    )
