"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "streamscout",
    "environment": "dev",
    "target": "native",
    "consistent_ip": False,
    "fetch_proxy_url": None,
    "providers": {
        "provider_dir": "./providers",
        "external_sources": [],
    },
    "http": {
        "timeout_seconds": 15.0,
        "follow_redirects": True,
        "user_agent": None,  # Browser-like UA from the fetcher module
    },
    "proxy": {
        "base_url": None,
        "m3u8_proxy_url": None,
    },
    "runner": {
        "source_order": [],
        "embed_order": [],
        "timeout_ms": None,
        "provider_timeout_seconds": None,
    },
    "validation": {
        "enabled": True,
        "skip_ids": [],
        "timeout_seconds": 10.0,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}
