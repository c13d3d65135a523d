"""Exception hierarchy for certsync.

Per-secret errors (malformed bundle, destination failure, write-back failure)
are caught by the orchestrator and turned into SyncOutcome records; they never
abort a cycle.  ConfigurationError is raised only at startup.
"""

from __future__ import annotations


class CertSyncError(Exception):
    """Base class for all certsync errors."""


class ConfigurationError(CertSyncError):
    """Required startup configuration is missing or invalid."""


class MalformedCertificateError(CertSyncError):
    """The certificate bundle contains no recognizable PEM certificate block."""

    def __init__(self, identity: str, reason: str) -> None:
        super().__init__(f"{identity}: {reason}")
        self.identity = identity
        self.reason = reason


class DestinationError(CertSyncError):
    """A destination adapter's remote call failed or its outcome is unknown."""

    def __init__(self, destination: str, message: str) -> None:
        super().__init__(f"{destination}: {message}")
        self.destination = destination


class PreconditionError(DestinationError):
    """The destination refused the upload before it was attempted."""


class SecretStoreError(CertSyncError):
    """Listing, reading or patching secrets in the cluster failed."""


class WriteBackError(CertSyncError):
    """The destination accepted the certificate but the reference could not be saved."""

    def __init__(self, identity: str, reference: str, cause: Exception) -> None:
        super().__init__(f"{identity}: synced as {reference!r} but write-back failed: {cause}")
        self.identity = identity
        self.reference = reference
        self.cause = cause
