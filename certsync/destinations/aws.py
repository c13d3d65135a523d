"""boto3 client construction for the ACM destination.

When a role ARN is configured the client is built from STS assumed-role
credentials.  Assumed credentials expire, so the provider rebuilds the
client a few minutes before expiry instead of once per import.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Any

import boto3
import structlog
from botocore.config import Config

from certsync.models.config import AWSConfig

_log = structlog.get_logger(component="destinations.aws")

_REFRESH_MARGIN = timedelta(minutes=5)


def boto_config(timeout_seconds: float) -> Config:
    """botocore config with bounded connect/read timeouts and standard retries."""
    return Config(
        connect_timeout=timeout_seconds,
        read_timeout=timeout_seconds,
        retries={"max_attempts": 3, "mode": "standard"},
    )


class ACMClientProvider:
    """Hands out an ACM client, assuming the configured role when needed."""

    def __init__(self, config: AWSConfig, timeout_seconds: float = 30.0) -> None:
        self._config = config
        self._boto_config = boto_config(timeout_seconds)
        self._lock = threading.Lock()
        self._client: Any = None
        self._expires_at: datetime | None = None

    def client(self) -> Any:
        with self._lock:
            if self._client is None or self._expired():
                self._client = self._build()
            return self._client

    def _expired(self) -> bool:
        if self._expires_at is None:
            return False
        return datetime.now(tz=UTC) >= self._expires_at - _REFRESH_MARGIN

    def _build(self) -> Any:
        region = self._config.region or None
        if not self._config.role_arn:
            self._expires_at = None
            return boto3.client("acm", region_name=region, config=self._boto_config)

        sts = boto3.client("sts", region_name=region, config=self._boto_config)
        role = sts.assume_role(
            RoleArn=self._config.role_arn,
            RoleSessionName=self._config.session_name,
        )
        credentials = role["Credentials"]
        self._expires_at = credentials["Expiration"]
        _log.info(
            "sts_role_assumed",
            role_arn=self._config.role_arn,
            assumed_role=role.get("AssumedRoleUser", {}).get("Arn", ""),
            expires_at=self._expires_at.isoformat(),
        )
        return boto3.client(
            "acm",
            region_name=region,
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            config=self._boto_config,
        )
