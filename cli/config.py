from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_ALERT_THRESHOLD = 85
DEFAULT_REFRESH_INTERVAL = 60.0

_BASE_URL_ENV = "API_BASE_URL"
_WS_URL_ENV = "DASHBOARD_WS_URL"
_THRESHOLD_ENV = "DASHBOARD_ALERT_THRESHOLD"
_REFRESH_ENV = "DASHBOARD_REFRESH_INTERVAL"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    ws_url: str = "ws://localhost:8000/ws"
    alert_threshold: int = DEFAULT_ALERT_THRESHOLD
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_threshold(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if 0 <= parsed <= 100 else default


def derive_ws_url(base_url: str) -> str:
    """Map an http(s) API base URL onto the realtime ``/ws`` endpoint."""
    if base_url.startswith("https://"):
        return "wss://" + base_url[len("https://"):] + "/ws"
    if base_url.startswith("http://"):
        return "ws://" + base_url[len("http://"):] + "/ws"
    return base_url + "/ws"


def load_config(
    base_url: Optional[str] = None,
    ws_url: Optional[str] = None,
    alert_threshold: Optional[int] = None,
    refresh_interval: Optional[float] = None,
) -> CLIConfig:
    url = (base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL).rstrip("/")
    channel_url = ws_url or os.getenv(_WS_URL_ENV) or derive_ws_url(url)
    if alert_threshold is None:
        alert_threshold = _read_threshold(os.getenv(_THRESHOLD_ENV), DEFAULT_ALERT_THRESHOLD)
    if refresh_interval is None:
        refresh_interval = _read_float(os.getenv(_REFRESH_ENV), DEFAULT_REFRESH_INTERVAL)
    return CLIConfig(
        base_url=url,
        ws_url=channel_url,
        alert_threshold=alert_threshold,
        refresh_interval=refresh_interval,
    )
