# SPDX-License-Identifier: MIT
# src/red_alert_feed/sources/__init__.py
from .oref import OrefFetcher, SnapshotFetcher

__all__ = ["OrefFetcher", "SnapshotFetcher"]
