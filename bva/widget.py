"""
Home-screen widget bridges.

The engine pushes the current verse (and settings/theme changes) to the
widget through a WidgetBridge. Pushes are best-effort: callers go through
notify_widget()/sync_widget(), which log failures and never raise.

Bridges:
- SharedStateWidgetBridge : JSON file shared with the widget process
                            (the app-group user-defaults of the mobile app)
- WebhookWidgetBridge     : HTTP POST to a widget host via requests
- NullWidgetBridge        : no widget attached
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

import requests

from .util import error, to_iso, utc_now, warn


class WidgetBridge(Protocol):
    def update_verse(self, text: str, reference: str) -> bool: ...

    def update_widget_settings(self, frequency: str, custom_hours: Optional[int] = None) -> bool: ...

    def update_theme_colors(self, primary_hex: Optional[str]) -> bool: ...

    def update_theme_name(self, name: str) -> bool: ...


class NullWidgetBridge:
    def update_verse(self, text: str, reference: str) -> bool:
        return True

    def update_widget_settings(self, frequency: str, custom_hours: Optional[int] = None) -> bool:
        return True

    def update_theme_colors(self, primary_hex: Optional[str]) -> bool:
        return True

    def update_theme_name(self, name: str) -> bool:
        return True


class SharedStateWidgetBridge:
    """
    Writes widget state to a JSON document the widget process reads.

    Keys: currentVerse, currentReference, verseTimestamp, refreshFrequency,
    customHours, themePrimaryColor, themeName. Every write increments
    timelineReloads, which the widget watches to refresh its timeline.
    """

    def __init__(self, path: Path, clock: Callable[[], Any] = utc_now):
        self.path = path
        self.clock = clock

    def read_state(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            warn(f"Widget state {self.path} is corrupt ({e}); starting fresh.")
            return {}

    def _write_state(self, state: Dict[str, Any]) -> None:
        state["timelineReloads"] = int(state.get("timelineReloads", 0)) + 1
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def update_verse(self, text: str, reference: str) -> bool:
        state = self.read_state()
        state["currentVerse"] = text
        state["currentReference"] = reference
        state["verseTimestamp"] = to_iso(self.clock())
        self._write_state(state)
        return True

    def update_widget_settings(self, frequency: str, custom_hours: Optional[int] = None) -> bool:
        state = self.read_state()
        state["refreshFrequency"] = frequency
        if custom_hours is not None:
            state["customHours"] = int(custom_hours)
        self._write_state(state)
        return True

    def update_theme_colors(self, primary_hex: Optional[str]) -> bool:
        state = self.read_state()
        if primary_hex:
            state["themePrimaryColor"] = primary_hex
        else:
            state.pop("themePrimaryColor", None)
        self._write_state(state)
        return True

    def update_theme_name(self, name: str) -> bool:
        state = self.read_state()
        state["themeName"] = name
        self._write_state(state)
        return True


class WebhookWidgetBridge:
    """
    Pushes widget updates to an HTTP endpoint.

    Each call POSTs {"action": ..., **payload} as JSON; any 2xx response
    counts as success.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, action: str, payload: Dict[str, Any]) -> bool:
        body = {"action": action, **payload}
        resp = self.session.post(self.url, json=body, timeout=self.timeout)
        if not resp.ok:
            warn(f"Widget host rejected {action}: HTTP {resp.status_code}")
        return resp.ok

    def update_verse(self, text: str, reference: str) -> bool:
        return self._post("updateVerse", {"verse": text, "reference": reference})

    def update_widget_settings(self, frequency: str, custom_hours: Optional[int] = None) -> bool:
        return self._post(
            "updateWidgetSettings",
            {"frequency": frequency, "customHours": custom_hours},
        )

    def update_theme_colors(self, primary_hex: Optional[str]) -> bool:
        return self._post("updateThemeColors", {"primaryColor": primary_hex})

    def update_theme_name(self, name: str) -> bool:
        return self._post("updateThemeName", {"themeName": name})


def sync_widget(bridge: Optional[WidgetBridge], method: str, *args: Any) -> bool:
    """
    Call `bridge.<method>(*args)` best-effort.

    Failures are logged and reported as False; they never propagate into
    the storage or scheduling logic that triggered the push.
    """
    if bridge is None:
        return False
    fn = getattr(bridge, method, None)
    if fn is None:
        return False
    try:
        result = fn(*args)
    except requests.RequestException as e:
        error(f"Widget {method} failed (network): {e}")
        return False
    except Exception as e:  # noqa: BLE001
        error(f"Widget {method} failed: {e!r}")
        return False
    if not result:
        warn(f"Widget {method} reported no update.")
        return False
    return True


def notify_widget(bridge: Optional[WidgetBridge], text: str, reference: str) -> bool:
    """Best-effort push of the current verse to the widget."""
    return sync_widget(bridge, "update_verse", text, reference)
