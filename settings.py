from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_WINDOW_SIZE_ENV = "WINDOW_SIZE"
_VERIFY_BATCH_ENV = "VERIFY_BATCH_SIZE"
_TABLE_NAME_ENV = "READINGS_TABLE_NAME"
_TABLE_PATH_ENV = "READINGS_PERSISTENCE_PATH"
_ANCHOR_MODE_ENV = "ANCHOR_MODE"
_ANCHOR_URL_ENV = "ANCHOR_URL"
_ANCHOR_TIMEOUT_ENV = "ANCHOR_TIMEOUT"
_ANCHOR_DELAY_ENV = "ANCHOR_SIMULATED_DELAY"
_FETCH_TIMEOUT_ENV = "FETCH_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_ANCHOR_MODES = ("simulated", "http")


@dataclass(frozen=True)
class Settings:
    window_size: int
    verify_batch_size: int
    table_name: str
    table_persistence_path: Optional[str]
    anchor_mode: str
    anchor_url: Optional[str]
    anchor_timeout: float
    anchor_simulated_delay: float
    fetch_timeout: float
    log_level: str


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


def _read_float(name: str, default: float, allow_zero: bool = False) -> float:
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
    if parsed > 0 or (allow_zero and parsed == 0):
        return parsed
    return default


def _read_anchor_mode(default: str) -> str:
    candidate = _read_str_env(_ANCHOR_MODE_ENV, default).lower()
    return candidate if candidate in _ANCHOR_MODES else default


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
        window_size=_read_positive_int(_WINDOW_SIZE_ENV, 50),
        verify_batch_size=_read_positive_int(_VERIFY_BATCH_ENV, 5),
        table_name=_read_str_env(_TABLE_NAME_ENV, "emissions"),
        table_persistence_path=_read_optional_env(_TABLE_PATH_ENV, "./tmp/readings.json"),
        anchor_mode=_read_anchor_mode("simulated"),
        anchor_url=_read_optional_env(_ANCHOR_URL_ENV, None),
        anchor_timeout=_read_float(_ANCHOR_TIMEOUT_ENV, 10.0),
        anchor_simulated_delay=_read_float(_ANCHOR_DELAY_ENV, 2.0, allow_zero=True),
        fetch_timeout=_read_float(_FETCH_TIMEOUT_ENV, 5.0),
        log_level=_read_log_level("INFO"),
    )
