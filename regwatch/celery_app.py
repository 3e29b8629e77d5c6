"""
Celery application setup for regwatch.

Celery beat is the external trigger for the hourly dispatcher: it fires
``regwatch.tasks.dispatch_scheduled_pollers`` once an hour on the
``maintenance`` queue. The task runs the dispatcher in-process, which then
calls each due poller over HTTP like any other trigger would.

Run:
    celery -A regwatch.celery_app worker -Q maintenance --loglevel=info
    celery -A regwatch.celery_app beat --loglevel=info
"""
import os

from celery import Celery
from celery.schedules import crontab
from kombu import Queue


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/1")

# A dispatch waits on every due poller, so its limits cover the slowest worker
DISPATCH_SOFT_LIMIT = int(os.getenv("DISPATCH_TASK_SOFT_TIME_LIMIT", "1500"))
DISPATCH_HARD_LIMIT = int(os.getenv("DISPATCH_TASK_TIME_LIMIT", "1800"))

app = Celery(
    "regwatch",
    broker=BROKER_URL,
    backend=RESULT_BACKEND,
    include=["regwatch.tasks"],
)

app.conf.task_queues = (Queue("maintenance", routing_key="maintenance"),)

app.conf.update(
    task_default_queue="maintenance",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_soft_time_limit=DISPATCH_SOFT_LIMIT,
    task_time_limit=DISPATCH_HARD_LIMIT,
    result_expires=int(os.getenv("CELERY_RESULT_EXPIRES", "86400")),
    timezone="UTC",
    enable_utc=True,
)

# ============================================================================
# Beat schedule
# ============================================================================

beat_schedule = {}

if _env_flag("DISPATCH_SCHEDULE_ENABLED", True):
    beat_schedule["scheduled-poller-cron"] = {
        "task": "regwatch.tasks.dispatch_scheduled_pollers",
        "schedule": crontab(minute=os.getenv("DISPATCH_SCHEDULE_MINUTE", "0")),
        "options": {"queue": "maintenance", "expires": 3300},
    }

if _env_flag("LOCK_SWEEP_ENABLED", True):
    # Offset from the dispatch tick
    beat_schedule["expire-stale-locks"] = {
        "task": "regwatch.tasks.expire_stale_locks",
        "schedule": crontab(minute=30),
        "options": {"queue": "maintenance"},
    }

app.conf.beat_schedule = beat_schedule
