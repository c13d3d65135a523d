"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SyncConfig:
    """Polling loop configuration."""

    namespaces: list[str] = field(default_factory=lambda: [""])
    interval_seconds: int = 60
    timeout_seconds: int = 30


@dataclass
class AWSConfig:
    """ACM destination configuration."""

    enabled: bool = True
    region: str = ""
    role_arn: str = ""
    session_name: str = "certsync"


@dataclass
class IncapsulaConfig:
    """Incapsula destination configuration."""

    enabled: bool = True
    endpoint: str = "https://my.incapsula.com"


@dataclass
class APIConfig:
    """Health and metrics API configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class CertSyncConfig:
    """Top-level certsync configuration."""

    operator_name: str = ""
    sync: SyncConfig = field(default_factory=SyncConfig)
    aws: AWSConfig = field(default_factory=AWSConfig)
    incapsula: IncapsulaConfig = field(default_factory=IncapsulaConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
