"""Core data structures for certsync."""

from certsync.models.certificate import CertificateBundle, Secret
from certsync.models.config import CertSyncConfig
from certsync.models.results import CycleReport, OutcomeStatus, SyncOutcome

__all__ = [
    "CertSyncConfig",
    "CertificateBundle",
    "CycleReport",
    "OutcomeStatus",
    "Secret",
    "SyncOutcome",
]
