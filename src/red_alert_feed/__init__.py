# SPDX-License-Identifier: MIT
# src/red_alert_feed/__init__.py
"""
Polls the Home Front Command alert feed and emits normalized alert events on
new alerts, status changes and all-clears.
"""

__version__ = "0.1.0"
