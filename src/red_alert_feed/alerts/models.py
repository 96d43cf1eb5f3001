# SPDX-License-Identifier: MIT
# src/red_alert_feed/alerts/models.py
"""
Data structures shared by the fetcher, the watcher and the sinks.

- Snapshot: the currently active alert batch as returned by the feed
- TrackedState: what the watcher remembers between ticks
- EmittedEvent: the normalized payload handed to a Sink
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class TriggerMode(str, Enum):
    """How the watcher responds to the feed."""
    NEW_ALERTS = "newAlerts"
    ALL_ACTIVE = "allAlerts"
    STATUS_CHANGE = "statusChange"

    @classmethod
    def parse(cls, value: "str | TriggerMode") -> "TriggerMode":
        """Accept wire values ("newAlerts") and enum names ("new_alerts", "NEW_ALERTS")."""
        if isinstance(value, cls):
            return value
        raw = str(value).strip()
        for mode in cls:
            if raw == mode.value or raw.upper() == mode.name:
                return mode
        raise ValueError(f"Unknown trigger mode: {value!r}")


class EventType(str, Enum):
    NEW_ALERT = "new_alert"
    STATUS_CHANGED = "status_changed"
    ACTIVE_ALERTS = "active_alerts"
    ALL_CLEAR = "all_clear"
    MANUAL_TRIGGER = "manual_trigger"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Snapshot:
    """
    One active alert batch.

    `observed_at` is stamped by the fetcher; the feed itself does not carry a timestamp.
    """
    id: str
    category: str
    title: str
    description: str
    locations: Tuple[str, ...] = ()
    observed_at: datetime = field(default_factory=_utcnow)

    @property
    def location_count(self) -> int:
        return len(self.locations)

    def with_locations(self, locations) -> "Snapshot":
        return replace(self, locations=tuple(locations))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], observed_at: Optional[datetime] = None) -> "Snapshot":
        """Build from the feed's JSON object ({"id", "cat", "title", "data", "desc"})."""
        data = payload.get("data") or []
        if isinstance(data, str):
            data = [data]
        elif not isinstance(data, list):
            raise TypeError(f"'data' must be a list of locations, got {type(data).__name__}")
        return cls(
            id=str(payload["id"]),
            category=str(payload.get("cat", "")),
            title=str(payload.get("title", "")),
            description=str(payload.get("desc", "")),
            locations=tuple(str(loc) for loc in data),
            observed_at=observed_at or _utcnow(),
        )


@dataclass(frozen=True)
class TrackedState:
    """
    The watcher's memory between ticks.

    Immutable: each cycle derives the next state via advance() and the watcher
    commits it in one place.
    """
    last_id: Optional[str] = None
    last_location_count: int = 0
    is_first_tick: bool = True

    def advance(self, snapshot: Optional[Snapshot]) -> "TrackedState":
        """State after a completed cycle that observed `snapshot` (pre-filter)."""
        return TrackedState(
            last_id=snapshot.id if snapshot is not None else None,
            last_location_count=snapshot.location_count if snapshot is not None else 0,
            is_first_tick=False,
        )


@dataclass
class EmittedEvent:
    """
    The output contract.

    has_active_alerts is derived from `alert`, so the two can never disagree.
    """
    event_type: EventType
    alert_count: int = 0
    alert: Optional[Dict[str, Any]] = None
    recent_history: Optional[List[Dict[str, Any]]] = None
    history_error: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def has_active_alerts(self) -> bool:
        return self.alert is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "alert_count": self.alert_count,
            "has_active_alerts": self.has_active_alerts,
        }
        if self.alert is not None:
            out["alert"] = self.alert
        if self.recent_history is not None:
            out["recent_history"] = self.recent_history
        if self.history_error is not None:
            out["history_error"] = self.history_error
        if self.error is not None:
            out["error"] = self.error
            out["error_type"] = self.error_type
        return out

    @classmethod
    def from_snapshot(
        cls,
        event_type: EventType,
        snapshot: Snapshot,
        location_details: Optional[List[Dict[str, Any]]] = None,
    ) -> "EmittedEvent":
        alert: Dict[str, Any] = {
            "id": snapshot.id,
            "category": snapshot.category,
            "title": snapshot.title,
            "description": snapshot.description,
            "locations": list(snapshot.locations),
            "alert_timestamp": snapshot.observed_at.isoformat(),
        }
        if location_details is not None:
            alert["locations_detailed"] = location_details
        return cls(event_type=event_type, alert_count=snapshot.location_count, alert=alert)

    @classmethod
    def fetch_error(cls, message: str) -> "EmittedEvent":
        return cls(event_type=EventType.ERROR, error=message, error_type="api_error")
