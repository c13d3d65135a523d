"""Unit tests for environment configuration loading."""

from __future__ import annotations

import os

import pytest

from certsync.config import load_config
from certsync.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("CERTSYNC_") or key == "AWS_REGION":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CERTSYNC_OPERATOR_NAME", "certsync.example.com")


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.operator_name == "certsync.example.com"
        assert config.sync.namespaces == [""]
        assert config.sync.interval_seconds == 60
        assert config.sync.timeout_seconds == 30
        assert config.aws.enabled is True
        assert config.incapsula.enabled is True
        assert config.incapsula.endpoint == "https://my.incapsula.com"
        assert config.api.port == 8080
        assert config.log.level == "info"

    def test_missing_operator_name_is_fatal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CERTSYNC_OPERATOR_NAME")
        with pytest.raises(ConfigurationError, match="OPERATOR_NAME"):
            load_config()

    def test_operator_name_with_slash_is_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CERTSYNC_OPERATOR_NAME", "a/b")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_namespace_list_is_split_and_trimmed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CERTSYNC_SECRETS_NAMESPACE", "ingress, web ,,")
        assert load_config().sync.namespaces == ["ingress", "web"]

    def test_interval_is_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CERTSYNC_SYNC_INTERVAL", "1")
        assert load_config().sync.interval_seconds == 5

    def test_non_integer_value_is_a_configuration_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CERTSYNC_SYNC_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError, match="SYNC_TIMEOUT"):
            load_config()

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CERTSYNC_LOG_LEVEL", "verbose")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_destinations_can_be_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CERTSYNC_ACM_ENABLED", "false")
        monkeypatch.setenv("CERTSYNC_INCAPSULA_ENABLED", "0")
        config = load_config()
        assert config.aws.enabled is False
        assert config.incapsula.enabled is False

    def test_aws_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        monkeypatch.setenv("CERTSYNC_AWS_STS_ROLE_ARN", "arn:aws:iam::123456789012:role/certsync")
        config = load_config()
        assert config.aws.region == "eu-west-1"
        assert config.aws.role_arn == "arn:aws:iam::123456789012:role/certsync"
        assert config.aws.session_name == "certsync"
