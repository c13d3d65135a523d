"""PEM bundle decomposition.

A TLS secret's ``tls.crt`` holds the leaf certificate followed by any
intermediates, back to back.  ACM and Incapsula both want the leaf and the
chain as separate inputs, so the bundle is split on the certificate header
marker and reassembled.
"""

from __future__ import annotations

from certsync.errors import MalformedCertificateError
from certsync.models.certificate import CertificateBundle

BEGIN_MARKER = b"-----BEGIN CERTIFICATE-----"
END_MARKER = b"-----END CERTIFICATE-----"


def decompose(
    identity: str,
    ca_bytes: bytes | None,
    bundle_bytes: bytes,
    key_bytes: bytes,
) -> CertificateBundle:
    """Split *bundle_bytes* into leaf and chain.

    Anything before the first header marker is discarded.  The leaf is the
    first block and the chain is every following block, each re-prefixed with
    the marker so the output bytes match the input exactly.

    ``ca_bytes`` is accepted but not consulted; it is reserved for trust-root
    validation.

    Raises:
        MalformedCertificateError: no complete certificate block was found.
    """
    segments = bundle_bytes.split(BEGIN_MARKER)
    if len(segments) < 2:
        raise MalformedCertificateError(identity, "no PEM certificate block in bundle")

    blocks = [BEGIN_MARKER + seg for seg in segments[1:]]
    leaf = blocks[0]
    if END_MARKER not in leaf:
        raise MalformedCertificateError(identity, "leaf certificate block is truncated")

    return CertificateBundle(
        identity=identity,
        leaf=leaf,
        chain=b"".join(blocks[1:]),
        private_key=key_bytes,
    )
