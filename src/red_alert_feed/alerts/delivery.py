# SPDX-License-Identifier: MIT
# src/red_alert_feed/alerts/delivery.py
"""
Sinks: where emitted events go.

Supported sinks:
- LoggingSink: one JSON log line per event (default, also the diagnostics channel)
- WebhookSink: POST each event to an HTTP endpoint
- TelegramSink: send a Markdown message via the Telegram Bot API
- FanoutSink: deliver to several sinks; one failing sink does not block the others

Emission may be called from the scheduler thread and from a manual check at the
same time; none of the sinks keep shared mutable state between calls.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

import requests

from .models import EmittedEvent, EventType

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Sink(Protocol):
    """Capability consumed by the watcher."""

    def emit(self, events: Sequence[EmittedEvent]) -> None: ...

    def log(self, level: str, message: str, context: Optional[Mapping[str, Any]] = None) -> None: ...


def _log_with_context(target: logging.Logger, level: str, message: str,
                      context: Optional[Mapping[str, Any]]) -> None:
    lvl = _LEVELS.get(level.lower(), logging.INFO)
    if context:
        ctx = " ".join(f"{k}={v}" for k, v in context.items())
        target.log(lvl, f"{message} ({ctx})")
    else:
        target.log(lvl, message)


class LoggingSink:
    """Writes events as JSON through stdlib logging."""

    def __init__(self, logger_name: str = "red_alert_feed.events"):
        self._events_logger = logging.getLogger(logger_name)

    def emit(self, events: Sequence[EmittedEvent]) -> None:
        for event in events:
            self._events_logger.info(json.dumps(event.to_dict(), ensure_ascii=False))

    def log(self, level: str, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        _log_with_context(logger, level, message, context)


class WebhookSink:
    """POSTs each event's dict form as JSON."""

    def __init__(self, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def emit(self, events: Sequence[EmittedEvent]) -> None:
        for event in events:
            try:
                response = self.session.post(
                    self.url,
                    json=event.to_dict(),
                    timeout=self.timeout,
                    headers={
                        "Content-Type": "application/json",
                        "User-Agent": "red-alert-feed/1.0",
                    },
                )
                response.raise_for_status()
            except Exception as e:
                logger.error(f"Failed to send webhook event {event.event_type.value} to {self.url}: {e}",
                             exc_info=True)
                raise
            logger.info(f"Webhook event {event.event_type.value} sent to {self.url}")

    def log(self, level: str, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        _log_with_context(logger, level, message, context)


class TelegramSink:
    """
    Sends each event as a Telegram message.

    Needs a bot token (from @BotFather) and the chat_id of the receiving chat.
    """

    MAX_LOCATIONS = 20

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        if not bot_token or not chat_id:
            raise ValueError("TelegramSink needs both bot_token and chat_id")
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def emit(self, events: Sequence[EmittedEvent]) -> None:
        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        for event in events:
            payload = {
                "chat_id": self.chat_id,
                "text": self.render_message(event),
                "parse_mode": "Markdown",
                "disable_web_page_preview": True,
            }
            try:
                response = self.session.post(url, json=payload, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                # requests puts the url (and with it the bot token) in the message
                status = getattr(e.response, "status_code", None)
                logger.error(f"Failed to send Telegram message for {event.event_type.value} (status={status})")
                raise RuntimeError(f"Telegram delivery failed (status={status})") from None
            logger.info(f"Telegram message sent to chat_id {self.chat_id} ({event.event_type.value})")

    def log(self, level: str, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        _log_with_context(logger, level, message, context)

    def render_message(self, event: EmittedEvent) -> str:
        """
        Render an event with Telegram Markdown (not V2).

        Telegram supports: *bold*, _italic_, [links](url), `code`
        """
        if event.event_type is EventType.ERROR:
            return f"⚠️ *Alert feed error*\n{_escape_md(event.error or '')}"

        if event.event_type is EventType.ALL_CLEAR:
            return "✅ *All clear* - no active alerts"

        alert = event.alert
        if alert is None:
            return "ℹ️ No active alerts"

        lines = [f"🚨 *{_escape_md(alert.get('title') or 'Alert')}*"]
        if alert.get("description"):
            lines.append(f"_{_escape_md(alert['description'])}_")
        lines.append("")

        locations: List[str] = list(alert.get("locations", []))
        for loc in locations[: self.MAX_LOCATIONS]:
            lines.append(f"• {_escape_md(loc)}")
        if len(locations) > self.MAX_LOCATIONS:
            lines.append(f"_...and {len(locations) - self.MAX_LOCATIONS} more locations_")

        lines.append("")
        lines.append(f"🆔 `{alert.get('id')}` | {event.event_type.value}")
        return "\n".join(lines)


class FanoutSink:
    """Deliver to every sink; failures are logged per sink, not propagated."""

    def __init__(self, sinks: Iterable[Sink]):
        self.sinks: List[Sink] = list(sinks)

    def emit(self, events: Sequence[EmittedEvent]) -> None:
        for sink in self.sinks:
            try:
                sink.emit(events)
            except Exception as e:
                logger.error(f"Sink {type(sink).__name__} failed to emit {len(events)} event(s): {e}")

    def log(self, level: str, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        # diagnostics go through the first sink only to avoid duplicate log lines
        if self.sinks:
            self.sinks[0].log(level, message, context)


def _escape_md(text: str) -> str:
    if not isinstance(text, str):
        return ""
    # Minimal escaping for Telegram Markdown (not V2)
    return (
        text.replace("_", "\\_")
            .replace("*", "\\*")
            .replace("`", "\\`")
            .replace("[", "\\[")
    )


def build_sink(webhook_url: str = "", telegram_bot_token: str = "", telegram_chat_id: str = "") -> Sink:
    """LoggingSink plus whichever remote sinks are configured."""
    sinks: List[Sink] = [LoggingSink()]
    if webhook_url:
        sinks.append(WebhookSink(webhook_url))
    if telegram_bot_token and telegram_chat_id:
        sinks.append(TelegramSink(telegram_bot_token, telegram_chat_id))
    elif telegram_bot_token or telegram_chat_id:
        logger.warning("Telegram needs both TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID, skipping telegram delivery")
    return sinks[0] if len(sinks) == 1 else FanoutSink(sinks)
