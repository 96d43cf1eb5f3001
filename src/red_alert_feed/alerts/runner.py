#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# src/red_alert_feed/alerts/runner.py
"""
CLI to run the alert watcher against the live feed.

Features:
- Settings from environment/.env, optionally a YAML/JSON file, then CLI flags
- Periodic watching until Ctrl-C, or a single manual check with --once
- Delivery to logs, plus webhook and/or Telegram when configured

Usage examples:
  # Watch for new alerts every 10s, log events as JSON
  red-alert-watch

  # Status changes in Tel Aviv only, POST events to a webhook
  red-alert-watch --mode statusChange --locations "תל אביב" --webhook-url http://localhost:8080/hook

  # One manual check, print the event and exit
  red-alert-watch --once
"""
from __future__ import annotations

import argparse
import logging
import time
from typing import List, Optional

from red_alert_feed.alerts.delivery import build_sink
from red_alert_feed.alerts.errors import AlertFeedError, ManualCheckError
from red_alert_feed.alerts.watcher import AlertWatcher
from red_alert_feed.config import Settings, WatcherConfig, load_settings_file, parse_log_level
from red_alert_feed.sources.oref import OrefFetcher

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Watch the Home Front Command alert feed and emit alert events")
    p.add_argument("--config", help="YAML/JSON settings file")
    p.add_argument("--mode", dest="trigger_mode", choices=["newAlerts", "allAlerts", "statusChange"],
                   help="Trigger mode (default: newAlerts)")
    p.add_argument("--interval", dest="check_interval_secs", type=float,
                   help="Seconds between checks, clamped to 5..300")
    p.add_argument("--locations", dest="location_filter",
                   help="Comma-separated location substrings; enables the location filter")
    p.add_argument("--areas", dest="area_filter",
                   help="Comma-separated area tags (Hebrew or e.g. tel_aviv, gaza_envelope); enables the area filter")
    p.add_argument("--include-history", dest="include_history", action="store_true", default=None,
                   help="Attach recent alert history to triggered events")
    p.add_argument("--no-trigger-on-clear", dest="trigger_on_clear", action="store_false", default=None,
                   help="Do not emit all_clear events")
    p.add_argument("--no-enhanced", dest="enhanced_location_data", action="store_false", default=None,
                   help="Omit per-location detail records")
    p.add_argument("--webhook-url", dest="webhook_url", help="POST every event to this URL")
    p.add_argument("--telegram", action="store_true",
                   help="Send events to Telegram (TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID)")
    p.add_argument("--once", action="store_true", help="Run a single manual check and exit")
    p.add_argument("--log-level", dest="log_level", help="Logging level (default: LOG_LEVEL or INFO)")
    return p


def resolve_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "trigger_mode": args.trigger_mode,
        "check_interval_secs": args.check_interval_secs,
        "location_filter": args.location_filter,
        "area_filter": args.area_filter,
        "include_history": args.include_history,
        "trigger_on_clear": args.trigger_on_clear,
        "enhanced_location_data": args.enhanced_location_data,
        "webhook_url": args.webhook_url,
        "log_level": args.log_level,
    }
    # passing a list on the CLI implies the filter is wanted
    if args.location_filter:
        overrides["filter_by_location"] = True
    if args.area_filter:
        overrides["filter_by_area"] = True

    if args.config:
        return load_settings_file(args.config, **overrides)
    return Settings.from_overrides(**overrides)


def build_watcher(settings: Settings, use_telegram: bool = False) -> AlertWatcher:
    config = WatcherConfig.from_settings(settings)
    fetcher = OrefFetcher.from_settings(settings)
    sink = build_sink(
        webhook_url=settings.webhook_url,
        telegram_bot_token=settings.telegram_bot_token if use_telegram else "",
        telegram_chat_id=settings.telegram_chat_id if use_telegram else "",
    )
    return AlertWatcher(fetcher, sink, config)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = resolve_settings(args)
        logging.basicConfig(level=parse_log_level(settings.log_level),
                            format='%(asctime)s - %(levelname)s - %(message)s')
        watcher = build_watcher(settings, use_telegram=args.telegram)
    except AlertFeedError as e:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
        logger.error(f"Invalid configuration: {e}")
        return 2

    logger.info("%s", "=" * 60)
    logger.info("Red Alert Watcher")
    logger.info("mode: %s | interval: %.0fs | location filter: %s | area filter: %s",
                watcher.config.trigger_mode.value, watcher.config.interval_secs,
                sorted(watcher.config.filters.location_substrings) if watcher.config.filters.filter_by_location else "off",
                sorted(watcher.config.filters.area_tags) if watcher.config.filters.filter_by_area else "off")
    logger.info("%s", "=" * 60)

    if args.once:
        try:
            event = watcher.manual_check()
        except ManualCheckError as e:
            logger.error(str(e))
            return 1
        logger.info("Manual check: has_active_alerts=%s alert_count=%s",
                    event.has_active_alerts, event.alert_count)
        return 0

    watcher.start()
    try:
        while watcher.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping watcher")
    finally:
        watcher.stop()
        watcher.join(timeout=settings.http_timeout_secs)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
