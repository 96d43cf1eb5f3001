# SPDX-License-Identifier: MIT
# src/red_alert_feed/config.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Union

import yaml
from dotenv import load_dotenv

from red_alert_feed.alerts.errors import ConfigError
from red_alert_feed.alerts.filters import AREA_TAGS, resolve_area_tag
from red_alert_feed.alerts.models import TriggerMode

load_dotenv(override=False)

DEFAULT_ALERTS_URL = "https://www.oref.org.il/WarningMessages/alert/alerts.json"
DEFAULT_HISTORY_URL = "https://www.oref.org.il/WarningMessages/History/AlertsHistory.json"

MIN_INTERVAL_SECS = 5
MAX_INTERVAL_SECS = 300

def _as_bool(v):
    if isinstance(v, str):
        return v.strip().lower() in {"1","true","yes","y","on"}
    return bool(v)

def _env_bool(name, default=False):
    v = os.getenv(name)
    if v is None: return default
    return _as_bool(v)

@dataclass(frozen=True)
class Settings:
    # -------- Feed -------------
    alerts_url: str          = os.getenv("ALERTS_URL", DEFAULT_ALERTS_URL)
    history_url: str         = os.getenv("HISTORY_URL", DEFAULT_HISTORY_URL)
    user_agent: str          = os.getenv("USER_AGENT", "red-alert-feed/1.0")
    http_timeout_secs: float = float(os.getenv("HTTP_TIMEOUT_SECS", "30"))
    history_timeout_secs: float = float(os.getenv("HISTORY_TIMEOUT_SECS", "15"))
    history_limit: int       = int(os.getenv("HISTORY_LIMIT", "5"))

    # -------- Watcher ----------
    trigger_mode: str        = os.getenv("TRIGGER_MODE", TriggerMode.NEW_ALERTS.value)
    check_interval_secs: float = float(os.getenv("CHECK_INTERVAL_SECS", "10"))

    # -------- Filters ----------
    filter_by_location: bool = _env_bool("FILTER_BY_LOCATION", False)
    location_filter: str     = os.getenv("LOCATION_FILTER", "")     # comma-separated
    filter_by_area: bool     = _env_bool("FILTER_BY_AREA", False)
    area_filter: str         = os.getenv("AREA_FILTER", "")         # comma-separated tags/aliases
    include_history: bool    = _env_bool("INCLUDE_HISTORY", False)
    trigger_on_clear: bool   = _env_bool("TRIGGER_ON_CLEAR", True)
    enhanced_location_data: bool = _env_bool("ENHANCED_LOCATION_DATA", True)

    # -------- Delivery ---------
    webhook_url: str         = os.getenv("WEBHOOK_URL", "")
    telegram_bot_token: str  = os.getenv("TELEGRAM_BOT_TOKEN", "")
    telegram_chat_id: str    = os.getenv("TELEGRAM_CHAT_ID", "")

    # -------- General ----------
    log_level: str           = os.getenv("LOG_LEVEL", "INFO")

    # helper: convert to dict (useful for logging)
    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        if d.get("telegram_bot_token"):
            d["telegram_bot_token"] = "***"
        return d

    @staticmethod
    def from_overrides(**kwargs) -> "Settings":
        """
        Build Settings and apply runtime overrides (e.g., parsed CLI flags).
        Only keys that match fields will be overridden.
        """
        base = Settings()
        current = asdict(base)
        current.update({k: v for k, v in kwargs.items() if k in current and v is not None})
        # rebuild frozen dataclass with updates
        return Settings(**current)  # type: ignore[arg-type]


def load_settings_file(path: Union[str, Path], **overrides) -> Settings:
    """
    Load Settings from a YAML/JSON file, then apply `overrides` on top.

    The file may hold the keys at top level or under a `watcher:` block.
    """
    config_file = Path(path)

    if config_file.suffix not in (".yaml", ".yml", ".json"):
        raise ConfigError(f"Unsupported config format: {config_file.suffix}")
    try:
        with open(config_file, encoding="utf-8") as f:
            if config_file.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_file}: {e}") from e
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigError(f"Invalid config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")
    data = data.get("watcher", data)

    # lists in YAML are accepted for the comma-separated fields
    for key in ("location_filter", "area_filter"):
        if isinstance(data.get(key), (list, tuple)):
            data[key] = ",".join(str(v) for v in data[key])

    merged = {**data, **{k: v for k, v in overrides.items() if v is not None}}
    return Settings.from_overrides(**merged)


# ---------------------------------------------------------------------------
# Immutable watcher configuration, captured once at construction
# ---------------------------------------------------------------------------

def parse_log_level(name: Union[str, int]) -> int:
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name).strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level: {name!r}")
    return level


def clamp_interval(seconds: float) -> float:
    return float(min(max(seconds, MIN_INTERVAL_SECS), MAX_INTERVAL_SECS))


def parse_location_filter(raw: Union[str, Iterable[str], None]) -> FrozenSet[str]:
    """Split a comma-separated list, trim entries, drop empties."""
    if not raw:
        return frozenset()
    parts = raw.split(",") if isinstance(raw, str) else raw
    return frozenset(p.strip() for p in parts if p and p.strip())


def parse_area_filter(raw: Union[str, Iterable[str], None]) -> FrozenSet[str]:
    tags = set()
    for item in parse_location_filter(raw):
        tag = resolve_area_tag(item)
        if tag is None:
            raise ConfigError(f"Unknown area tag {item!r}; expected one of {', '.join(AREA_TAGS)}")
        tags.add(tag)
    return frozenset(tags)


@dataclass(frozen=True)
class FilterConfig:
    location_substrings: FrozenSet[str] = frozenset()
    area_tags: FrozenSet[str] = frozenset()
    filter_by_location: bool = False
    filter_by_area: bool = False
    trigger_on_clear: bool = True
    include_history: bool = False
    enhanced_location_data: bool = True


@dataclass(frozen=True)
class WatcherConfig:
    trigger_mode: TriggerMode = TriggerMode.NEW_ALERTS
    interval_secs: float = 10.0
    filters: FilterConfig = field(default_factory=FilterConfig)

    def __post_init__(self):
        # frozen: go through object.__setattr__ to normalize
        object.__setattr__(self, "interval_secs", clamp_interval(self.interval_secs))

    @classmethod
    def from_settings(cls, settings: Settings) -> "WatcherConfig":
        try:
            mode = TriggerMode.parse(settings.trigger_mode)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        try:
            interval = float(settings.check_interval_secs)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid check interval: {settings.check_interval_secs!r}") from e

        # file-loaded values may be strings ("false"), not bools
        filters = FilterConfig(
            location_substrings=parse_location_filter(settings.location_filter),
            area_tags=parse_area_filter(settings.area_filter),
            filter_by_location=_as_bool(settings.filter_by_location),
            filter_by_area=_as_bool(settings.filter_by_area),
            trigger_on_clear=_as_bool(settings.trigger_on_clear),
            include_history=_as_bool(settings.include_history),
            enhanced_location_data=_as_bool(settings.enhanced_location_data),
        )
        return cls(
            trigger_mode=mode,
            interval_secs=interval,
            filters=filters,
        )
