"""Secret access for certsync.

Submodules:
    annotations -- Operator-prefixed annotation keys and helpers.
    store       -- SecretStore protocol and the kubernetes-asyncio implementation.
"""

from certsync.secrets.annotations import AnnotationKeys
from certsync.secrets.store import KubernetesSecretStore, SecretStore

__all__ = ["AnnotationKeys", "KubernetesSecretStore", "SecretStore"]
