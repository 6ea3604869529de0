from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_INPUT_PATH_ENV = "SENSOR_STATS_INPUT_PATH"
_OUTPUT_PATH_ENV = "SENSOR_STATS_OUTPUT_PATH"
_WORKER_COUNT_ENV = "SENSOR_STATS_WORKER_COUNT"
_FOLD_LOCKING_ENV = "SENSOR_STATS_FOLD_LOCKING"
_LOG_LEVEL_ENV = "LOG_LEVEL"

FOLD_LOCKING_MODES = ("entry", "table")


@dataclass(frozen=True)
class Settings:
    input_path: str
    output_path: str
    worker_count: int
    fold_locking: str
    log_level: str


def available_parallelism() -> int:
    """Number of CPUs usable by this process, never less than one."""
    return os.cpu_count() or 1


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_worker_count(default: int) -> int:
    value = os.getenv(_WORKER_COUNT_ENV)
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


def _read_fold_locking(default: str) -> str:
    candidate = _read_str_env(_FOLD_LOCKING_ENV, default).lower()
    return candidate if candidate in FOLD_LOCKING_MODES else default


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
        input_path=_read_str_env(_INPUT_PATH_ENV, "devices.csv"),
        output_path=_read_str_env(_OUTPUT_PATH_ENV, "sensor_stats.csv"),
        worker_count=_read_worker_count(available_parallelism()),
        fold_locking=_read_fold_locking("entry"),
        log_level=_read_log_level("INFO"),
    )
