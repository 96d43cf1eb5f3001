# SPDX-License-Identifier: MIT
# src/red_alert_feed/alerts/filters.py
"""
Location and area filters applied to a triggering snapshot.

Both filters are keep-filters over the snapshot's location names and compose:
the location filter runs first, the area filter runs on its output. An empty
result means the trigger is cancelled for this cycle.

Area matching is deliberately coarse: each area tag maps to one marker substring.
It stands in for a real location→area lookup and only changes by editing
AREA_MARKERS.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from .models import Snapshot

if TYPE_CHECKING:
    from red_alert_feed.config import FilterConfig

logger = logging.getLogger(__name__)

# Selectable area tags (Hebrew, as used by the feed)
AREA_TAGS: Tuple[str, ...] = (
    "עוטף עזה",   # Gaza Envelope
    "תל אביב",    # Tel Aviv
    "ירושלים",    # Jerusalem
    "צפון",       # North
    "מרכז",       # Center
    "דרום",       # South
)

# tag -> marker substring; tags without an entry never match
AREA_MARKERS: Dict[str, str] = {
    "עוטף עזה": "עוטף",
    "תל אביב": "תל אביב",
    "ירושלים": "ירושלים",
}

AREA_ALIASES: Dict[str, str] = {
    "gaza_envelope": "עוטף עזה",
    "tel_aviv": "תל אביב",
    "jerusalem": "ירושלים",
    "north": "צפון",
    "center": "מרכז",
    "south": "דרום",
}

# Placeholder values for enhanced location data (no geocoding behind them)
DEFAULT_SHELTER_TIME_SECS = 15
UNKNOWN_AREA = "unknown"


def resolve_area_tag(tag: str) -> Optional[str]:
    """Map an English alias or Hebrew tag to the canonical tag; None if unknown."""
    tag = tag.strip()
    if tag in AREA_TAGS:
        return tag
    return AREA_ALIASES.get(tag.lower().replace(" ", "_").replace("-", "_"))


def filter_by_location(locations: Iterable[str], substrings: Iterable[str]) -> List[str]:
    """Keep locations containing at least one substring (case-sensitive)."""
    subs = list(substrings)
    return [loc for loc in locations if any(s in loc for s in subs)]


def filter_by_area(locations: Iterable[str], area_tags: Iterable[str]) -> List[str]:
    """Keep locations containing the marker of at least one selected area tag."""
    markers = [AREA_MARKERS[tag] for tag in area_tags if tag in AREA_MARKERS]
    return [loc for loc in locations if any(m in loc for m in markers)]


def apply_filters(snapshot: Snapshot, filters: "FilterConfig") -> Optional[Snapshot]:
    """
    Run the configured filters over `snapshot`.

    Returns the (possibly narrowed) snapshot, or None when a filter removed every
    location and the trigger should be cancelled.
    """
    locations: List[str] = list(snapshot.locations)

    if filters.filter_by_location and filters.location_substrings:
        locations = filter_by_location(locations, filters.location_substrings)
        if not locations:
            logger.debug(f"Location filter removed all {snapshot.location_count} locations of {snapshot.id}")
            return None

    if filters.filter_by_area and filters.area_tags:
        before = len(locations)
        locations = filter_by_area(locations, filters.area_tags)
        if not locations:
            logger.debug(f"Area filter removed all {before} remaining locations of {snapshot.id}")
            return None

    if len(locations) == snapshot.location_count:
        return snapshot
    return snapshot.with_locations(locations)


def location_details(locations: Iterable[str]) -> List[Dict[str, Any]]:
    """Per-location detail records; shelter time and area are placeholders."""
    return [
        {
            "name": loc,
            "hebrew_name": loc,
            "estimated_shelter_time": DEFAULT_SHELTER_TIME_SECS,
            "area": UNKNOWN_AREA,
        }
        for loc in locations
    ]
