"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "brasilrd",
    "environment": "dev",
    "http": {
        "timeout_seconds": 15.0,
        "user_agent": "Brasil-RD-Addon/1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "memory",
        "dir": "./.cache/brasilrd",
        "ttl_seconds": 3600,
        "sweep_interval_seconds": 300.0,
    },
    "debrid": {
        "base_url": "https://api.real-debrid.com/rest/1.0",
        "timeout_seconds": 10.0,
        "max_retries": 3,
        "base_delay_seconds": 1.0,
    },
    "streams": {
        "max_streams": 15,
        "max_concurrent_torrents": 2,
        "batch_delay_seconds": 1.0,
    },
}
