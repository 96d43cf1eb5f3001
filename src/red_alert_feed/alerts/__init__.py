# SPDX-License-Identifier: MIT
# src/red_alert_feed/alerts/__init__.py
"""
Alert watching for the Home Front Command feed.

This module provides:
- Trigger decisions from the previous tick's state (new alert, status change, all-clear)
- Location/area filtering of triggering snapshots
- The AlertWatcher poller with start/stop/manual_check
- Delivery sinks (log, webhook, Telegram)
"""

from .delivery import FanoutSink, LoggingSink, Sink, TelegramSink, WebhookSink
from .detector import Decision, decide
from .errors import (
    AlertFeedError,
    ConfigError,
    FetchError,
    HistoryFetchError,
    ManualCheckError,
    WatcherStateError,
)
from .models import EmittedEvent, EventType, Snapshot, TrackedState, TriggerMode
from .watcher import AlertWatcher, WatcherStatus

__all__ = [
    "AlertWatcher",
    "WatcherStatus",
    "Decision",
    "decide",
    "EmittedEvent",
    "EventType",
    "Snapshot",
    "TrackedState",
    "TriggerMode",
    "Sink",
    "LoggingSink",
    "WebhookSink",
    "TelegramSink",
    "FanoutSink",
    "AlertFeedError",
    "ConfigError",
    "FetchError",
    "HistoryFetchError",
    "ManualCheckError",
    "WatcherStateError",
]
