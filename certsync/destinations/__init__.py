"""Destination adapters for certsync.

Exports:
    DestinationAdapter   -- Abstract base for every destination.
    ACMAdapter           -- AWS Certificate Manager import/re-import.
    IncapsulaAdapter     -- Incapsula custom certificate upload.
    ACMClientProvider    -- boto3 ACM client with optional STS role assumption.
    build_destinations   -- Factory used by the application bootstrap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from certsync.destinations.acm import ACMAdapter
from certsync.destinations.aws import ACMClientProvider
from certsync.destinations.base import DestinationAdapter
from certsync.destinations.incapsula import IncapsulaAdapter

if TYPE_CHECKING:
    from certsync.models.config import CertSyncConfig
    from certsync.secrets.annotations import AnnotationKeys
    from certsync.secrets.store import SecretStore

_log = structlog.get_logger(component="destinations")

__all__ = [
    "ACMAdapter",
    "ACMClientProvider",
    "DestinationAdapter",
    "IncapsulaAdapter",
    "build_destinations",
]


def build_destinations(
    config: CertSyncConfig,
    keys: AnnotationKeys,
    store: SecretStore,
) -> list[DestinationAdapter]:
    """Build the enabled destination adapters in a stable order (ACM first)."""
    timeout = float(config.sync.timeout_seconds)
    adapters: list[DestinationAdapter] = []

    if config.aws.enabled:
        provider = ACMClientProvider(config.aws, timeout_seconds=timeout)
        adapters.append(ACMAdapter(keys, client_factory=provider.client))
        _log.info("acm_destination_enabled", region=config.aws.region or "<default>")
    else:
        _log.info("acm_destination_disabled")

    if config.incapsula.enabled:
        adapters.append(IncapsulaAdapter(keys, store, endpoint=config.incapsula.endpoint, timeout=timeout))
        _log.info("incapsula_destination_enabled", endpoint=config.incapsula.endpoint)
    else:
        _log.info("incapsula_destination_disabled")

    return adapters
