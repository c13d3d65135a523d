"""Secret store backed by the Kubernetes API.

``SecretStore`` is the interface the orchestrator and the Incapsula adapter
depend on; ``KubernetesSecretStore`` implements it with kubernetes-asyncio.
Secret data arrives base64-encoded from the API and is decoded here so the
rest of certsync only ever sees bytes.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Sequence
from typing import Any, Protocol

import aiohttp
import structlog

from certsync.errors import SecretStoreError
from certsync.models.certificate import Secret

_log = structlog.get_logger(component="secrets.store")

# Connection-level failures talking to the apiserver.
_TRANSPORT_ERRORS = (aiohttp.ClientError, OSError)


class SecretStore(Protocol):
    async def list(self, namespaces: Sequence[str]) -> list[Secret]: ...

    async def get(self, namespace: str, name: str) -> Secret: ...

    async def update(self, secret: Secret) -> None: ...


class KubernetesSecretStore:
    """Reads and annotates secrets through a CoreV1Api.

    Args:
        core_v1: ``kubernetes_asyncio.client.CoreV1Api`` (or a test double).
    """

    def __init__(self, core_v1: Any) -> None:
        self._api = core_v1

    async def list(self, namespaces: Sequence[str]) -> list[Secret]:
        """List secrets in each namespace.  An empty namespace means all namespaces."""
        from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

        secrets: list[Secret] = []
        for namespace in namespaces:
            try:
                if namespace:
                    result = await self._api.list_namespaced_secret(namespace)
                else:
                    result = await self._api.list_secret_for_all_namespaces()
            except ApiException as exc:
                raise SecretStoreError(f"listing secrets in {namespace or '<all>'!r} failed: {exc.reason}") from exc
            except _TRANSPORT_ERRORS as exc:
                raise SecretStoreError(f"listing secrets in {namespace or '<all>'!r} failed: {exc!r}") from exc
            items = result.items or []
            _log.debug("secrets_listed", namespace=namespace or "<all>", count=len(items))
            secrets.extend(_to_secret(item) for item in items)
        return secrets

    async def get(self, namespace: str, name: str) -> Secret:
        from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

        try:
            item = await self._api.read_namespaced_secret(name, namespace)
        except ApiException as exc:
            raise SecretStoreError(f"reading secret {namespace}/{name} failed: {exc.reason}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise SecretStoreError(f"reading secret {namespace}/{name} failed: {exc!r}") from exc
        return _to_secret(item)

    async def update(self, secret: Secret) -> None:
        """Merge-patch the secret's annotations; data is never written."""
        from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

        body = {"metadata": {"annotations": dict(secret.annotations)}}
        try:
            await self._api.patch_namespaced_secret(secret.name, secret.namespace, body)
        except ApiException as exc:
            raise SecretStoreError(f"patching secret {secret.identity} failed: {exc.reason}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise SecretStoreError(f"patching secret {secret.identity} failed: {exc!r}") from exc
        _log.debug("secret_annotations_patched", secret=secret.identity)


def _to_secret(item: Any) -> Secret:
    """Convert a V1Secret into a Secret, decoding its data."""
    metadata = item.metadata
    data: dict[str, bytes] = {}
    for key, value in (item.data or {}).items():
        try:
            data[key] = base64.b64decode(value or "")
        except (binascii.Error, ValueError):
            _log.warning(
                "secret_data_not_base64",
                secret=f"{metadata.namespace}/{metadata.name}",
                key=key,
            )
    return Secret(
        namespace=metadata.namespace or "",
        name=metadata.name or "",
        annotations=dict(metadata.annotations or {}),
        data=data,
        resource_version=metadata.resource_version or "",
    )
