# SPDX-License-Identifier: MIT
# src/red_alert_feed/alerts/errors.py
"""
Exception hierarchy for the alert watcher.
"""
from __future__ import annotations


class AlertFeedError(Exception):
    """Base class for everything raised by red_alert_feed."""


class FetchError(AlertFeedError):
    """Timeout, network failure, non-2xx status or unparseable body from the feed."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class HistoryFetchError(FetchError):
    """Same causes as FetchError, scoped to the optional history enrichment."""


class ManualCheckError(AlertFeedError):
    """Raised to the caller of AlertWatcher.manual_check() when the fetch fails."""


class WatcherStateError(AlertFeedError):
    """Lifecycle call made in a state that does not allow it (e.g. after stop())."""


class ConfigError(AlertFeedError, ValueError):
    """Invalid trigger mode, area tag or other configuration value."""
