"""
dashboard/config.py

Environment-driven settings for the dashboard computation core.

Settings are read from the process environment, with `.env` and
`.env.local` at the repository root loaded once as a fallback, the same
layering every settings getter in this repository relies on. Malformed
values fall back to the field default rather than failing import.

Objects built from these settings (the default metric registry, the CSV
ingestion service) register their cache-clear hooks here so that a single
:func:`reset_settings_cache` call rebuilds them from the new environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})

_dependent_cache_clears: list[Callable[[], None]] = []


def load_env_files() -> None:
    """
    Copy KEY=VALUE pairs from `.env` and `.env.local` into ``os.environ``.

    Blank lines and ``#`` comments are skipped. Variables already set in
    the process win.
    """

    project_root = Path(__file__).resolve().parents[1]
    for env_path in (project_root / ".env", project_root / ".env.local"):
        if not env_path.is_file():
            continue

        for line in env_path.read_text(encoding="utf-8").splitlines():
            key, sep, value = line.strip().partition("=")
            key = key.strip()
            if not sep or not key or key.startswith("#"):
                continue
            os.environ.setdefault(key, value.strip().strip('"').strip("'"))


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_env_files()


def _env_value(name: str) -> str | None:
    """Return the stripped value of *name*, or None when unset or blank."""

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return None
    return raw_value.strip() or None


def _get_bool_env(name: str, default: bool) -> bool:
    value = _env_value(name)
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


def _get_int_env(name: str, default: int) -> int:
    value = _env_value(name)
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    value = _env_value(name)
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    return _env_value(name) or default


def _get_optional_str_env(name: str) -> str | None:
    return _env_value(name)


@dataclass(frozen=True)
class DashboardSettings:
    """
    Runtime settings shared by the metrics engine and chart series builders.
    """

    null_placeholder: str = "-"
    clamp_ratio: float = 2.0
    expense_baseline: float = 0.14
    metrics_config_path: str | None = None
    strict_metrics: bool = True
    log_level: str = "INFO"


@dataclass(frozen=True)
class CSVIngestionSettings:
    """
    Runtime settings for CSV row loading.
    """

    max_validation_errors: int = 500
    log_validation_errors: bool = True


@lru_cache(maxsize=1)
def get_dashboard_settings() -> DashboardSettings:
    """
    Return cached dashboard settings from environment variables.
    """

    return DashboardSettings(
        null_placeholder=_get_str_env("DASHBOARD_NULL_PLACEHOLDER", "-"),
        clamp_ratio=max(1.0, _get_float_env("DASHBOARD_CLAMP_RATIO", 2.0)),
        expense_baseline=_get_float_env("DASHBOARD_EXPENSE_BASELINE", 0.14),
        metrics_config_path=_get_optional_str_env("DASHBOARD_METRICS_CONFIG"),
        strict_metrics=_get_bool_env("DASHBOARD_STRICT_METRICS", True),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_csv_ingestion_settings() -> CSVIngestionSettings:
    """
    Return cached CSV ingestion settings from environment variables.
    """

    return CSVIngestionSettings(
        max_validation_errors=max(1, _get_int_env("CSV_INGEST_MAX_VALIDATION_ERRORS", 500)),
        log_validation_errors=_get_bool_env("CSV_INGEST_LOG_VALIDATION_ERRORS", True),
    )


def register_settings_dependent(cache_clear: Callable[[], None]) -> None:
    """
    Register *cache_clear* to run whenever the settings cache is reset.

    Used by cached factories whose product is built from settings values.
    """

    if cache_clear not in _dependent_cache_clears:
        _dependent_cache_clears.append(cache_clear)


def reset_settings_cache() -> None:
    """Clear cached settings and everything built from them (mainly for tests)."""

    get_dashboard_settings.cache_clear()
    get_csv_ingestion_settings.cache_clear()
    for cache_clear in _dependent_cache_clears:
        cache_clear()


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for scripts embedding the core.
    """

    log_level = (level or get_dashboard_settings().log_level).strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
