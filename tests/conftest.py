# Ensure `src/` is on sys.path so tests can import `red_alert_feed` without requiring editable install
import os
import sys
import threading
from datetime import datetime, timezone

import pytest

HERE = os.path.dirname(__file__)
SRC = os.path.abspath(os.path.join(HERE, "..", "src"))
if os.path.isdir(SRC) and SRC not in sys.path:
    sys.path.insert(0, SRC)

from red_alert_feed.alerts.errors import FetchError, HistoryFetchError  # noqa: E402
from red_alert_feed.alerts.models import Snapshot, TriggerMode  # noqa: E402
from red_alert_feed.alerts.watcher import AlertWatcher  # noqa: E402
from red_alert_feed.config import FilterConfig, WatcherConfig  # noqa: E402


class StubFetcher:
    """
    Returns queued results in order. An Exception instance in the queue is raised
    instead of returned. The last result repeats once the queue is exhausted.
    """
    def __init__(self, current=None, history=None):
        self.current = list(current or [None])
        self.history = history if history is not None else []
        self.current_calls = 0
        self.history_calls = 0

    def fetch_current(self):
        self.current_calls += 1
        result = self.current.pop(0) if len(self.current) > 1 else self.current[0]
        if isinstance(result, Exception):
            raise result
        return result

    def fetch_history(self):
        self.history_calls += 1
        if isinstance(self.history, Exception):
            raise self.history
        return self.history


class RecordingSink:
    """Collects emitted events and log calls."""
    def __init__(self):
        self.events = []
        self.logs = []
        self._lock = threading.Lock()

    def emit(self, events):
        with self._lock:
            self.events.extend(events)

    def log(self, level, message, context=None):
        with self._lock:
            self.logs.append((level, message, dict(context or {})))

    @property
    def event_types(self):
        return [e.event_type.value for e in self.events]


def make_snapshot(id="133", locations=("תל אביב - מרכז העיר", "חיפה - כרמל"), **kwargs):
    """Helper to build a Snapshot with sane defaults."""
    return Snapshot(
        id=id,
        category=kwargs.get("category", "1"),
        title=kwargs.get("title", "ירי רקטות וטילים"),
        description=kwargs.get("description", "היכנסו למרחב המוגן ושהו בו 10 דקות"),
        locations=tuple(locations),
        observed_at=kwargs.get("observed_at", datetime(2024, 4, 14, 1, 30, tzinfo=timezone.utc)),
    )


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def watcher_factory(sink):
    def make(fetcher, mode=TriggerMode.NEW_ALERTS, **filter_kwargs):
        filter_kwargs.setdefault("enhanced_location_data", False)
        config = WatcherConfig(trigger_mode=mode, interval_secs=5, filters=FilterConfig(**filter_kwargs))
        return AlertWatcher(fetcher, sink, config)
    return make


@pytest.fixture
def fetch_error():
    return FetchError("Timed out after 30s fetching https://example.test/alerts.json")


@pytest.fixture
def history_error():
    return HistoryFetchError("Request to https://example.test/history.json failed: 503")
