"""Secret and certificate data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

TLS_CERT_KEY = "tls.crt"
TLS_PRIVATE_KEY = "tls.key"
CA_CERT_KEY = "ca.crt"


@dataclass(frozen=True)
class Secret:
    """A Kubernetes secret as seen by certsync.

    ``data`` values are already base64-decoded.
    """

    namespace: str
    name: str
    annotations: dict[str, str] = field(default_factory=dict)
    data: dict[str, bytes] = field(default_factory=dict)
    resource_version: str = ""

    @property
    def identity(self) -> str:
        return f"{self.namespace}/{self.name}"

    def has_tls_material(self) -> bool:
        return bool(self.data.get(TLS_CERT_KEY)) and bool(self.data.get(TLS_PRIVATE_KEY))


@dataclass(frozen=True)
class CertificateBundle:
    """One TLS identity decomposed from a secret.

    Built fresh from the secret's current data on every cycle; never mutated.
    """

    identity: str
    leaf: bytes
    chain: bytes
    private_key: bytes = field(repr=False)

    @property
    def full_chain(self) -> bytes:
        """Leaf followed by the intermediates, as most PEM consumers expect."""
        return self.leaf + self.chain
