"""
Tests for the poller registry and worker schedules.
"""

import sys
from datetime import datetime

import pytest

from regwatch.core.ops import schedule_registry
from regwatch.core.ops.schedule_registry import (
    EVERY_TICK,
    WorkerSchedule,
    get_poller_entry,
    get_registered_pollers,
)

EXPECTED_POLLERS = [
    ("federal-register-poller", "federalRegister"),
    ("cannabis-hemp-poller", "cannabisHempPoller"),
    ("state-regulations-poller", "stateRegulations"),
    ("caselaw-poller", "caselawPoller"),
    ("kratom-poller", "kratomPoller"),
    ("kava-poller", "kavaPoller"),
    ("state-legislature-poller", "stateLegislature"),
    ("congress-poller", "congressPoller"),
]


class TestWorkerSchedule:
    """Test hour-of-day cadence."""

    def test_every_tick(self):
        assert all(EVERY_TICK.is_due(hour) for hour in range(24))
        assert EVERY_TICK.describe() == "every hour"
        assert EVERY_TICK.cron_expression == "0 * * * *"

    def test_daily(self):
        schedule = WorkerSchedule(every_n_hours=24, offset_hours=3)
        assert schedule.hours == (3,)
        assert schedule.is_due(3)
        assert not schedule.is_due(4)
        assert schedule.describe() == "daily at 3 UTC"

    def test_every_six_hours_with_offset(self):
        schedule = WorkerSchedule(every_n_hours=6, offset_hours=2)
        assert schedule.hours == (2, 8, 14, 20)
        assert schedule.describe() == "every 6 hours at 2,8,14,20 UTC"
        assert schedule.cron_expression == "0 2,8,14,20 * * *"

    def test_next_run_after(self):
        schedule = WorkerSchedule(every_n_hours=6, offset_hours=0)
        assert schedule.next_run_after(datetime(2024, 1, 1, 7, 30)) == datetime(2024, 1, 1, 12, 0)
        assert schedule.next_run_after(datetime(2024, 1, 1, 19, 0)) == datetime(2024, 1, 2, 0, 0)

    def test_invalid_schedule(self):
        with pytest.raises(ValueError):
            WorkerSchedule(every_n_hours=0)
        with pytest.raises(ValueError):
            WorkerSchedule(every_n_hours=6, offset_hours=24)


class TestRegistry:
    """Test poller discovery and lookup."""

    def test_all_pollers_registered_in_order(self):
        entries = get_registered_pollers()
        assert [(e.name, e.result_key) for e in entries] == EXPECTED_POLLERS

    def test_lookup_by_name(self):
        entry = get_poller_entry("kava-poller")
        assert entry is not None
        assert entry.poller_cls.name == "kava-poller"
        assert entry.schedule.describe() == "daily at 5 UTC"
        assert get_poller_entry("missing-poller") is None

    def test_due_at_hour_six(self):
        due = [e.name for e in get_registered_pollers() if e.schedule.is_due(6)]
        assert due == ["federal-register-poller", "cannabis-hemp-poller", "state-legislature-poller"]

    def test_request_bodies(self):
        assert get_poller_entry("cannabis-hemp-poller").request_body == {"pollAll": True}
        assert get_poller_entry("state-regulations-poller").request_body == {"fullScan": True}
        assert get_poller_entry("kava-poller").request_body == {}

    def test_create_passes_kwargs(self):
        poller = get_poller_entry("congress-poller").create(batch_size=7)
        assert poller.batch_size == 7
        assert poller.source == "congress_gov"

    def test_as_dict(self):
        info = get_poller_entry("caselaw-poller").as_dict()
        assert info["source"] == "courtlistener"
        assert info["hours"] == [3]
        assert info["cron_expression"] == "0 3 * * *"


class TestDiscovery:
    """Test connector discovery."""

    def test_failed_import_is_retried(self, monkeypatch):
        monkeypatch.setattr(schedule_registry, "_discovered", False)

        with monkeypatch.context() as m:
            m.setitem(sys.modules, "regwatch.connectors", None)
            with pytest.raises(ImportError):
                schedule_registry.discover_pollers()

        assert schedule_registry._discovered is False

        schedule_registry.discover_pollers()

        assert schedule_registry._discovered is True
        assert len(get_registered_pollers()) == len(EXPECTED_POLLERS)
