"""
Configuration management for the alert configuration service, loading settings from environment variables with support for defaults, type conversion, and validation. This module defines a `Config` class that encapsulates server settings, outbound HTTP client tuning, synchronization timeouts and retry policy, the auto-sync schedule, and the global defaults written into every compiled Alertmanager document.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
import os
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

_VALID_TARGET_TYPES = {"metrics-engine", "alert-dispatcher", "other"}


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _to_list(value: Optional[str], default: Optional[List[str]] = None) -> List[str]:
    if value is None:
        return default or []
    parsed = [item.strip() for item in value.split(",") if item.strip()]
    return parsed if parsed else (default or [])


def _parse_targets(value: Optional[str]) -> List[Dict[str, str]]:
    # name|type|endpoint[,name|type|endpoint...]
    targets: List[Dict[str, str]] = []
    for entry in _to_list(value):
        parts = [part.strip() for part in entry.split("|")]
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Invalid TARGETS entry '{entry}'. Expected name|type|endpoint")
        name, target_type, endpoint = parts
        if target_type not in _VALID_TARGET_TYPES:
            raise ValueError(
                f"Invalid target type '{target_type}' in TARGETS. Allowed values: {sorted(_VALID_TARGET_TYPES)}"
            )
        targets.append({"name": name, "type": target_type, "endpoint": endpoint})
    return targets


def _env_name() -> str:
    return (os.getenv("APP_ENV") or os.getenv("ENVIRONMENT") or "development").strip().lower()


def _is_production_env() -> bool:
    return _env_name() in {"prod", "production"}


class Config:
    def __init__(self) -> None:
        self.APP_ENV: str = _env_name()
        self.IS_PRODUCTION: bool = _is_production_env()

        # Server configuration
        self.HOST: str = os.getenv("HOST", "127.0.0.1")
        self.PORT: int = int(os.getenv("PORT", "4321"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")
        self.ENABLE_API_DOCS: bool = _to_bool(os.getenv("ENABLE_API_DOCS"), default=not self.IS_PRODUCTION)

        # Request settings
        self.DEFAULT_TIMEOUT: float = float(os.getenv("DEFAULT_TIMEOUT", "30.0"))

        # Shared upstream HTTP client pool tuning
        self.HTTP_CLIENT_MAX_CONNECTIONS: int = int(os.getenv("HTTP_CLIENT_MAX_CONNECTIONS", "100"))
        self.HTTP_CLIENT_MAX_KEEPALIVE_CONNECTIONS: int = int(os.getenv("HTTP_CLIENT_MAX_KEEPALIVE_CONNECTIONS", "40"))
        self.HTTP_CLIENT_KEEPALIVE_EXPIRY: float = float(os.getenv("HTTP_CLIENT_KEEPALIVE_EXPIRY", "30"))

        # Synchronization: timeouts apply per probe and per push attempt
        self.SYNC_PROBE_TIMEOUT: float = float(os.getenv("SYNC_PROBE_TIMEOUT", "5.0"))
        self.SYNC_PUSH_TIMEOUT: float = float(os.getenv("SYNC_PUSH_TIMEOUT", "30.0"))
        # Total push attempts per target, first try included
        self.SYNC_MAX_ATTEMPTS: int = int(os.getenv("SYNC_MAX_ATTEMPTS", "3"))
        self.SYNC_RETRY_BACKOFF: float = float(os.getenv("SYNC_RETRY_BACKOFF", "1.0"))
        self.SYNC_RETRY_MAX_BACKOFF: float = float(os.getenv("SYNC_RETRY_MAX_BACKOFF", "8.0"))
        self.SYNC_MAX_CONCURRENCY: int = int(os.getenv("SYNC_MAX_CONCURRENCY", "16"))
        self.SYNC_HISTORY_LIMIT: int = int(os.getenv("SYNC_HISTORY_LIMIT", "500"))

        # Auto-sync schedule
        self.AUTO_SYNC_ENABLED: bool = _to_bool(os.getenv("AUTO_SYNC_ENABLED"), default=True)
        self.AUTO_SYNC_INTERVAL_SECONDS: float = float(os.getenv("AUTO_SYNC_INTERVAL_SECONDS", "300"))

        # Routing defaults written into the compiled root route
        self.DEFAULT_RECEIVER: str = os.getenv("DEFAULT_RECEIVER", "default")
        self.DEFAULT_GROUP_BY: List[str] = _to_list(
            os.getenv("DEFAULT_GROUP_BY"), default=["alertname", "cluster", "service"]
        )
        self.DEFAULT_GROUP_WAIT: str = os.getenv("DEFAULT_GROUP_WAIT", "10s")
        self.DEFAULT_GROUP_INTERVAL: str = os.getenv("DEFAULT_GROUP_INTERVAL", "10s")
        self.DEFAULT_REPEAT_INTERVAL: str = os.getenv("DEFAULT_REPEAT_INTERVAL", "1h")

        # Alertmanager global section
        self.RESOLVE_TIMEOUT: str = os.getenv("RESOLVE_TIMEOUT", "5m")
        self.SMTP_SMARTHOST: str = os.getenv("SMTP_SMARTHOST", "localhost:587")
        self.SMTP_FROM: str = os.getenv("SMTP_FROM", "alertmanager@example.com")

        # Backend API paths (Mimir/Cortex compatible)
        self.DEFAULT_ORG_ID: str = os.getenv("DEFAULT_ORG_ID", "anonymous")
        self.RULER_NAMESPACE: str = os.getenv("RULER_NAMESPACE", "alert-config")
        self.RULER_CONFIG_BASEPATH: str = os.getenv("RULER_CONFIG_BASEPATH", "/prometheus/config/v1/rules")
        self.ALERTMANAGER_CONFIG_PATH: str = os.getenv("ALERTMANAGER_CONFIG_PATH", "/api/v1/alerts")

        # Targets registered at startup
        self.TARGETS: List[Dict[str, str]] = _parse_targets(os.getenv("TARGETS"))

        self.validate()

    def validate(self) -> None:
        if self.SYNC_PROBE_TIMEOUT <= 0 or self.SYNC_PUSH_TIMEOUT <= 0:
            raise ValueError("SYNC_PROBE_TIMEOUT and SYNC_PUSH_TIMEOUT must be greater than 0")
        if self.SYNC_MAX_ATTEMPTS < 1:
            raise ValueError("SYNC_MAX_ATTEMPTS must be at least 1")
        if self.SYNC_RETRY_BACKOFF < 0 or self.SYNC_RETRY_MAX_BACKOFF < 0:
            raise ValueError("SYNC_RETRY_BACKOFF and SYNC_RETRY_MAX_BACKOFF cannot be negative")
        if self.SYNC_MAX_CONCURRENCY < 1:
            raise ValueError("SYNC_MAX_CONCURRENCY must be at least 1")
        if self.SYNC_HISTORY_LIMIT < 1:
            raise ValueError("SYNC_HISTORY_LIMIT must be at least 1")
        if self.AUTO_SYNC_INTERVAL_SECONDS <= 0:
            raise ValueError("AUTO_SYNC_INTERVAL_SECONDS must be greater than 0")
        if not self.DEFAULT_RECEIVER.strip():
            raise ValueError("DEFAULT_RECEIVER cannot be empty")
        if self.IS_PRODUCTION and self.ENABLE_API_DOCS:
            logger.warning("API docs are enabled in production")


class Constants:
    # HTTP status messages
    STATUS_HEALTHY: str = "Healthy"
    STATUS_SUCCESS: str = "Success"
    STATUS_SKIPPED: str = "Skipped"
    STATUS_ERROR: str = "Error"

config = Config()
constants = Constants()
