# SPDX-License-Identifier: MIT
# src/red_alert_feed/alerts/watcher.py
"""
AlertWatcher - polls the feed, decides, filters and emits.

Lifecycle: IDLE --start()--> RUNNING --stop()--> STOPPED

Each periodic cycle:
1. fetch the current snapshot (failure -> one `error` event, state untouched)
2. decide whether to trigger (detector.decide)
3. filter the snapshot (may cancel the trigger)
4. build the event, optionally enriched with location details and history
5. emit at most once
6. commit the next TrackedState

Cycles are serialized by a single scheduler thread plus a non-blocking cycle lock,
so TrackedState is only ever touched by one cycle at a time. manual_check() runs
outside that lock because it never reads or writes TrackedState.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .detector import decide
from .errors import FetchError, ManualCheckError, WatcherStateError
from .filters import apply_filters, location_details
from .models import EmittedEvent, EventType, Snapshot, TrackedState

if TYPE_CHECKING:
    from red_alert_feed.config import WatcherConfig
    from red_alert_feed.sources.oref import SnapshotFetcher
    from .delivery import Sink

logger = logging.getLogger(__name__)


class WatcherStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class AlertWatcher:
    """
    Stateful poller owning the last-seen summary of the feed.

    Args:
        fetcher: SnapshotFetcher (fetch_current / fetch_history)
        sink: Sink receiving emitted events and diagnostics
        config: immutable WatcherConfig captured for the watcher's lifetime
    """

    def __init__(self, fetcher: "SnapshotFetcher", sink: "Sink", config: "WatcherConfig"):
        self.fetcher = fetcher
        self.sink = sink
        self.config = config

        self._state = TrackedState()
        self._status = WatcherStatus.IDLE
        self._cycle_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> TrackedState:
        return self._state

    @property
    def status(self) -> WatcherStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is WatcherStatus.RUNNING

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run one cycle immediately, then every `config.interval_secs` on a background thread."""
        with self._lifecycle_lock:
            if self._status is WatcherStatus.RUNNING:
                logger.warning("start() called on a running watcher, ignoring")
                return
            if self._status is WatcherStatus.STOPPED:
                raise WatcherStateError("Watcher was stopped and cannot be restarted")
            self._status = WatcherStatus.RUNNING

        self.sink.log("info", "Starting monitoring for alerts", {
            "mode": self.config.trigger_mode.value,
            "interval_secs": self.config.interval_secs,
        })

        self.tick()

        with self._lifecycle_lock:
            # stop() may have landed during the immediate cycle
            if self._stop_event.is_set():
                return
            self._thread = threading.Thread(target=self._run_loop, name="alert-watcher", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        """Cancel the schedule. Idempotent; a no-op before start()."""
        with self._lifecycle_lock:
            if self._status is not WatcherStatus.RUNNING:
                return
            self._status = WatcherStatus.STOPPED
            self._stop_event.set()
        self.sink.log("info", "Stopped monitoring")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the scheduler thread (and an in-flight cycle) to finish."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run_loop(self) -> None:
        interval = self.config.interval_secs
        # fixed delay between cycles; wait() returns True as soon as stop() is called
        while not self._stop_event.wait(interval):
            self.tick()
        logger.debug("Scheduler thread exiting")

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """
        Run one periodic cycle.

        Never raises. Returns False if the tick was skipped because the watcher
        is stopped or another cycle is still in flight.
        """
        if self._status is WatcherStatus.STOPPED:
            logger.debug("Watcher stopped, skipping tick")
            return False
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Previous cycle still in flight, skipping tick")
            return False
        try:
            self._run_cycle()
        except Exception as e:
            logger.exception(f"Unexpected error in alert cycle: {e}")
        finally:
            self._cycle_lock.release()
        return True

    def _run_cycle(self) -> Optional[EmittedEvent]:
        state = self._state

        try:
            snapshot = self.fetcher.fetch_current()
        except FetchError as e:
            self.sink.log("error", "Error checking for alerts", {"error": str(e)})
            self.sink.emit([EmittedEvent.fetch_error(str(e))])
            return None

        event = None
        try:
            event = self._evaluate(snapshot, state)
            if event is not None:
                self.sink.emit([event])
                self.sink.log("info", f"Triggered due to {event.event_type.value}", {
                    "alert_id": snapshot.id if snapshot is not None else None,
                    "alert_count": snapshot.location_count if snapshot is not None else 0,
                })
        finally:
            # single mutation point for tracked state
            self._state = state.advance(snapshot)
        return event

    def _evaluate(self, snapshot: Optional[Snapshot], state: TrackedState) -> Optional[EmittedEvent]:
        filters = self.config.filters
        decision = decide(self.config.trigger_mode, snapshot, state, filters.trigger_on_clear)
        if not decision.should_trigger or decision.reason is None:
            return None

        if snapshot is not None:
            filtered = apply_filters(snapshot, filters)
            if filtered is None:
                self.sink.log("debug", "Trigger cancelled by filters", {"alert_id": snapshot.id})
                return None
            details = location_details(filtered.locations) if filters.enhanced_location_data else None
            event = EmittedEvent.from_snapshot(decision.reason, filtered, details)
        else:
            # all-clear reports the count that just went away
            event = EmittedEvent(event_type=decision.reason, alert_count=state.last_location_count)

        if filters.include_history:
            self._attach_history(event)
        return event

    def _attach_history(self, event: EmittedEvent) -> None:
        try:
            event.recent_history = list(self.fetcher.fetch_history())
        except FetchError as e:
            self.sink.log("warning", f"Failed to fetch alert history: {e}")
            event.history_error = "Failed to fetch recent history"

    # ------------------------------------------------------------------
    # Manual check
    # ------------------------------------------------------------------

    def manual_check(self) -> EmittedEvent:
        """
        Fetch and emit a `manual_trigger` event unconditionally.

        Bypasses TrackedState and filters. Fetch failures are raised as
        ManualCheckError instead of being emitted.
        """
        if self._status is WatcherStatus.STOPPED:
            raise WatcherStateError("manual_check() called on a stopped watcher")

        self.sink.log("info", "Manual check executed")
        try:
            snapshot = self.fetcher.fetch_current()
        except FetchError as e:
            raise ManualCheckError(f"Manual check failed: {e}") from e

        if snapshot is not None:
            event = EmittedEvent.from_snapshot(EventType.MANUAL_TRIGGER, snapshot)
        else:
            event = EmittedEvent(event_type=EventType.MANUAL_TRIGGER)
        self.sink.emit([event])
        return event
