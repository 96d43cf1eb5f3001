# SPDX-License-Identifier: MIT
# src/red_alert_feed/alerts/detector.py
"""
Trigger decision for one tick.

decide() is pure: it looks only at the freshly fetched snapshot, the previous
TrackedState and the trigger settings, and says whether to emit and why.
Filtering and payload building happen afterwards in the watcher.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import EventType, Snapshot, TrackedState, TriggerMode


@dataclass(frozen=True)
class Decision:
    should_trigger: bool
    reason: Optional[EventType] = None


NO_TRIGGER = Decision(False, None)


def decide(
    mode: TriggerMode,
    snapshot: Optional[Snapshot],
    state: TrackedState,
    trigger_on_clear: bool,
) -> Decision:
    """
    Decide whether this tick should emit.

    Args:
        mode: trigger mode fixed at watcher construction
        snapshot: current snapshot, None when there are no active alerts
        state: tracked state left by the previous completed cycle
        trigger_on_clear: emit all_clear when alerts go away

    Returns:
        Decision(should_trigger, reason)
    """
    current_id = snapshot.id if snapshot is not None else None
    current_count = snapshot.location_count if snapshot is not None else 0

    if mode is TriggerMode.NEW_ALERTS:
        if snapshot is not None and current_id != state.last_id:
            return Decision(True, EventType.NEW_ALERT)
        if trigger_on_clear and snapshot is None and state.last_location_count > 0:
            return Decision(True, EventType.ALL_CLEAR)
        return NO_TRIGGER

    if mode is TriggerMode.ALL_ACTIVE:
        if snapshot is not None:
            return Decision(True, EventType.ACTIVE_ALERTS)
        # is_first_tick is redundant with last_location_count > 0 here; kept as-is
        if trigger_on_clear and not state.is_first_tick and state.last_location_count > 0:
            return Decision(True, EventType.ALL_CLEAR)
        return NO_TRIGGER

    if mode is TriggerMode.STATUS_CHANGE:
        if current_count != state.last_location_count or current_id != state.last_id:
            reason = EventType.STATUS_CHANGED if snapshot is not None else EventType.ALL_CLEAR
            return Decision(True, reason)
        return NO_TRIGGER

    raise ValueError(f"Unhandled trigger mode: {mode!r}")
