from __future__ import annotations

import configparser
from dataclasses import dataclass, field
from pathlib import Path

from sysdash.collectors import DEFAULT_WIFI_INTERFACE
from sysdash.monitor import DEFAULT_INTERVAL
from sysdash.runner import DEFAULT_TIMEOUT


@dataclass(frozen=True)
class DashboardConfig:
    refresh_interval_s: float = DEFAULT_INTERVAL
    command_timeout_s: float = DEFAULT_TIMEOUT
    wifi_interface: str = DEFAULT_WIFI_INTERFACE


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "WARNING"
    file: str | None = None


@dataclass(frozen=True)
class AppConfig:
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _get_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load settings from a CFG file. Without a path, defaults are used."""
    if path is None:
        return AppConfig()

    parser = configparser.ConfigParser()
    read_files = parser.read(path)
    if not read_files:
        raise FileNotFoundError(f"Config file not found: {path}")

    # Use parser.get* with fallback to handle missing sections
    dashboard = DashboardConfig(
        refresh_interval_s=parser.getfloat(
            "dashboard", "refresh_interval_s", fallback=DEFAULT_INTERVAL
        ),
        command_timeout_s=parser.getfloat(
            "dashboard", "command_timeout_s", fallback=DEFAULT_TIMEOUT
        ),
        wifi_interface=parser.get(
            "dashboard", "wifi_interface", fallback=DEFAULT_WIFI_INTERFACE
        ).strip()
        or DEFAULT_WIFI_INTERFACE,
    )

    log = LoggingConfig(
        level=parser.get("logging", "level", fallback="WARNING"),
        file=_get_optional(parser.get("logging", "file", fallback=None)),
    )

    return AppConfig(dashboard=dashboard, logging=log)
