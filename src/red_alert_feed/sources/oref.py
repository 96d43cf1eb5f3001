# SPDX-License-Identifier: MIT
# src/red_alert_feed/sources/oref.py
"""
Snapshot fetcher for the Home Front Command (Pikud Ha'Oref) alert feed.

- alerts.json returns a single JSON object while alerts are active and an empty
  (or BOM/whitespace-only) body otherwise
- AlertsHistory.json returns a JSON list of recent alerts, newest first

Any timeout, connection problem, non-2xx status, unparseable body or alert object
of the wrong shape is raised as FetchError (HistoryFetchError for the history endpoint).
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Type

import requests

from red_alert_feed.alerts.errors import FetchError, HistoryFetchError
from red_alert_feed.alerts.models import Snapshot
from red_alert_feed.config import Settings

logger = logging.getLogger(__name__)


class SnapshotFetcher(Protocol):
    """Capability consumed by the watcher."""

    def fetch_current(self) -> Optional[Snapshot]: ...

    def fetch_history(self) -> List[Dict[str, Any]]: ...


class OrefFetcher:
    def __init__(
        self,
        alerts_url: str,
        history_url: str,
        timeout: float = 30.0,
        history_timeout: float = 15.0,
        history_limit: int = 5,
        user_agent: str = "red-alert-feed/1.0",
        session: Optional[requests.Session] = None,
    ):
        self.alerts_url = alerts_url
        self.history_url = history_url
        self.timeout = timeout
        self.history_timeout = history_timeout
        self.history_limit = history_limit
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Referer": "https://www.oref.org.il/",
            "X-Requested-With": "XMLHttpRequest",
            "Accept": "application/json",
        })

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "OrefFetcher":
        return cls(
            alerts_url=settings.alerts_url,
            history_url=settings.history_url,
            timeout=settings.http_timeout_secs,
            history_timeout=settings.history_timeout_secs,
            history_limit=settings.history_limit,
            user_agent=settings.user_agent,
            session=session,
        )

    def fetch_current(self) -> Optional[Snapshot]:
        """Current alert batch, or None when nothing is active."""
        payload = self._get_json(self.alerts_url, self.timeout, FetchError)
        if isinstance(payload, dict) and payload.get("id"):
            try:
                return Snapshot.from_payload(payload, observed_at=datetime.now(timezone.utc))
            except (TypeError, ValueError, KeyError) as e:
                raise FetchError(f"Malformed alert payload from {self.alerts_url}: {e}",
                                 url=self.alerts_url) from e
        return None

    def fetch_history(self) -> List[Dict[str, Any]]:
        """Most recent `history_limit` history records (newest first)."""
        payload = self._get_json(self.history_url, self.history_timeout, HistoryFetchError)
        if payload is None:
            return []
        if isinstance(payload, list):
            return payload[: self.history_limit]
        return [payload]

    def _get_json(self, url: str, timeout: float, error_cls: Type[FetchError]) -> Any:
        try:
            r = self.session.get(url, timeout=timeout)
            r.raise_for_status()
        except requests.Timeout as e:
            raise error_cls(f"Timed out after {timeout}s fetching {url}", url=url) from e
        except requests.RequestException as e:
            raise error_cls(f"Request to {url} failed: {e}", url=url) from e

        # The feed is served as UTF-8 with a BOM; empty body == no alerts
        text = r.content.decode("utf-8-sig", errors="replace").strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            logger.debug(f"Unparseable body from {url}: {text[:80]!r}")
            raise error_cls(f"Unparseable response from {url}: {e}", url=url) from e
