"""Destination adapter contract.

A destination is an external certificate store that certsync replicates to.
Each adapter decides which secrets it handles, extracts its own metadata from
the secret's annotations, and performs the remote create-or-update.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from certsync.models.certificate import CertificateBundle, Secret


class DestinationAdapter(ABC):
    """Abstract base class for all destinations.

    ``sync`` must raise ``DestinationError`` (or ``PreconditionError``) on
    failure and return the destination's reference on success.  When
    ``existing_reference`` is given the adapter updates that resource in place
    instead of creating a new one.
    """

    @property
    @abstractmethod
    def kind(self) -> str:
        """Short destination name used in logs, metrics and cache keys."""

    @property
    def reference_annotation(self) -> str | None:
        """Annotation the reference is written back to, or None for no write-back."""
        return None

    @abstractmethod
    def enabled_for(self, secret: Secret) -> bool:
        """True if *secret* asks to be replicated to this destination."""

    def existing_reference(self, secret: Secret) -> str | None:
        """Reference recorded on *secret* by a previous sync, if any."""
        if self.reference_annotation is None:
            return None
        return secret.annotations.get(self.reference_annotation) or None

    def metadata_for(self, secret: Secret) -> dict[str, Any]:
        """Destination-specific inputs read from *secret*."""
        return {"namespace": secret.namespace, "name": secret.name}

    @abstractmethod
    async def sync(
        self,
        bundle: CertificateBundle,
        existing_reference: str | None,
        metadata: dict[str, Any],
    ) -> str:
        """Create or update the certificate at the destination.

        Returns:
            The destination reference (e.g. an ACM certificate ARN).
        """

    async def close(self) -> None:
        """Release any connections held by the adapter."""
