from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_BIN_STORE_PATH_ENV = "BIN_STORE_PATH"
_USER_STORE_PATH_ENV = "USER_STORE_PATH"
_SIMULATOR_ENABLED_ENV = "SIMULATOR_ENABLED"
_SIMULATOR_INTERVAL_ENV = "SIMULATOR_INTERVAL_SECONDS"
_BROADCAST_TIMEOUT_ENV = "BROADCAST_TIMEOUT_SECONDS"
_SEED_DEFAULTS_ENV = "SEED_DEFAULT_DATA"
_JWT_SECRET_ENV = "JWT_SECRET"
_TOKEN_TTL_ENV = "TOKEN_TTL_SECONDS"
_APP_ENV_ENV = "APP_ENV"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    bin_store_path: Optional[str]
    user_store_path: Optional[str]
    simulator_enabled: bool
    simulator_interval: float
    broadcast_timeout: float
    seed_default_data: bool
    jwt_secret: str
    token_ttl_seconds: int
    environment: str
    log_level: str

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
        return False
    return default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
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


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        bin_store_path=_read_optional_env(_BIN_STORE_PATH_ENV, "./tmp/bins.json"),
        user_store_path=_read_optional_env(_USER_STORE_PATH_ENV, "./tmp/users.json"),
        simulator_enabled=_read_bool_env(_SIMULATOR_ENABLED_ENV, True),
        simulator_interval=_read_positive_float(_SIMULATOR_INTERVAL_ENV, 30.0),
        broadcast_timeout=_read_positive_float(_BROADCAST_TIMEOUT_ENV, 5.0),
        seed_default_data=_read_bool_env(_SEED_DEFAULTS_ENV, True),
        jwt_secret=_read_str_env(_JWT_SECRET_ENV, "smartbin-development-secret-change-me"),
        token_ttl_seconds=_read_positive_int(_TOKEN_TTL_ENV, 3600),
        environment=_read_str_env(_APP_ENV_ENV, "production").lower(),
        log_level=_read_log_level("INFO"),
    )
