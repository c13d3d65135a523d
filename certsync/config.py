"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from certsync.errors import ConfigurationError
from certsync.models.config import (
    APIConfig,
    AWSConfig,
    CertSyncConfig,
    IncapsulaConfig,
    LogConfig,
    SyncConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"CERTSYNC_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"CERTSYNC_{key} must be an integer, got {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _parse_namespaces(value: str) -> list[str]:
    """Split a comma-separated namespace list.  Empty means all namespaces."""
    namespaces = [ns.strip() for ns in value.split(",") if ns.strip()]
    return namespaces or [""]


def _validate_operator_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ConfigurationError("CERTSYNC_OPERATOR_NAME is required")
    if "/" in value:
        raise ConfigurationError(f"CERTSYNC_OPERATOR_NAME must not contain '/': {value!r}")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ConfigurationError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> CertSyncConfig:
    """Load configuration from CERTSYNC_* (and AWS_REGION) environment variables.

    Raises:
        ConfigurationError: a required value is missing or a value is invalid.
    """
    return CertSyncConfig(
        operator_name=_validate_operator_name(_env("OPERATOR_NAME", "")),
        sync=SyncConfig(
            namespaces=_parse_namespaces(_env("SECRETS_NAMESPACE", "")),
            interval_seconds=_env_int("SYNC_INTERVAL", 60, min_val=5, max_val=3600),
            timeout_seconds=_env_int("SYNC_TIMEOUT", 30, min_val=1, max_val=300),
        ),
        aws=AWSConfig(
            enabled=_env_bool("ACM_ENABLED", True),
            region=os.environ.get("AWS_REGION", ""),
            role_arn=_env("AWS_STS_ROLE_ARN", ""),
            session_name=_env("AWS_STS_SESSION_NAME", "certsync"),
        ),
        incapsula=IncapsulaConfig(
            enabled=_env_bool("INCAPSULA_ENABLED", True),
            endpoint=_env("INCAPSULA_ENDPOINT", "https://my.incapsula.com").rstrip("/"),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
