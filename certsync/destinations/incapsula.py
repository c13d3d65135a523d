"""Incapsula (Imperva Cloud WAF) destination.

Secrets annotated with ``<operator>/incapsula-site-id`` have their certificate
uploaded as the site's custom certificate.  API credentials live in a
separate secret, named by ``<operator>/incapsula-secret-name`` and stored in
the certificate's namespace, with ``api_id`` and ``api_key`` data keys.

Before uploading, the site status is fetched; a site that reports an error or
has no SSL support configured fails the precondition and nothing is uploaded.
"""

from __future__ import annotations

import base64
from typing import Any

import httpx
import structlog

from certsync.destinations.base import DestinationAdapter
from certsync.errors import DestinationError, PreconditionError, SecretStoreError
from certsync.models.certificate import CertificateBundle, Secret
from certsync.secrets.annotations import AnnotationKeys
from certsync.secrets.store import SecretStore

_log = structlog.get_logger(component="destinations.incapsula")

_SITE_STATUS_PATH = "/api/prov/v1/sites/status"
_UPLOAD_PATH = "/api/prov/v1/sites/customCertificate/upload"


class IncapsulaAdapter(DestinationAdapter):
    """Uploads custom certificates to Incapsula sites.

    Args:
        keys:     Annotation keys for the configured operator name.
        store:    Secret store used to read the API credentials secret.
        endpoint: Incapsula API base URL.
        timeout:  Per-request timeout in seconds.
        client:   Optional pre-built AsyncClient (tests inject a MockTransport).
    """

    def __init__(
        self,
        keys: AnnotationKeys,
        store: SecretStore,
        endpoint: str = "https://my.incapsula.com",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._keys = keys
        self._store = store
        self._client = client or httpx.AsyncClient(base_url=endpoint, timeout=timeout)

    @property
    def kind(self) -> str:
        return "incapsula"

    def enabled_for(self, secret: Secret) -> bool:
        return bool(secret.annotations.get(self._keys.incapsula_site_id))

    def metadata_for(self, secret: Secret) -> dict[str, Any]:
        return {
            "namespace": secret.namespace,
            "name": secret.name,
            "site_id": secret.annotations.get(self._keys.incapsula_site_id, ""),
            "credentials_secret": secret.annotations.get(self._keys.incapsula_secret_name, ""),
        }

    async def sync(
        self,
        bundle: CertificateBundle,
        existing_reference: str | None,
        metadata: dict[str, Any],
    ) -> str:
        site_id = str(metadata.get("site_id", ""))
        if not site_id:
            raise DestinationError(self.kind, f"{bundle.identity}: no site id")

        credentials = await self._credentials(bundle.identity, metadata)
        await self._check_site(bundle.identity, site_id, credentials)

        form = {
            **credentials,
            "site_id": site_id,
            "certificate": base64.b64encode(bundle.full_chain).decode("ascii"),
            "private_key": base64.b64encode(bundle.private_key).decode("ascii"),
        }
        await self._post(bundle.identity, _UPLOAD_PATH, form)
        _log.info("incapsula_certificate_uploaded", secret=bundle.identity, site_id=site_id)
        return site_id

    async def close(self) -> None:
        await self._client.aclose()

    async def _credentials(self, identity: str, metadata: dict[str, Any]) -> dict[str, str]:
        """Read ``api_id``/``api_key`` from the credentials secret."""
        name = str(metadata.get("credentials_secret", ""))
        namespace = str(metadata.get("namespace", ""))
        if not name:
            raise DestinationError(self.kind, f"{identity}: {self._keys.incapsula_secret_name} not set")
        try:
            secret = await self._store.get(namespace, name)
        except SecretStoreError as exc:
            raise DestinationError(self.kind, f"{identity}: credentials unavailable: {exc}") from exc

        api_id = secret.data.get("api_id", b"").decode().strip()
        api_key = secret.data.get("api_key", b"").decode().strip()
        if not api_id or not api_key:
            raise DestinationError(self.kind, f"{identity}: {namespace}/{name} must contain api_id and api_key")
        return {"api_id": api_id, "api_key": api_key}

    async def _check_site(self, identity: str, site_id: str, credentials: dict[str, str]) -> None:
        # Only the API's own answer (res, ssl) is a precondition failure.
        status = await self._post(identity, _SITE_STATUS_PATH, {**credentials, "site_id": site_id}, check_res=False)
        if str(status.get("res", "")) != "0":
            raise PreconditionError(
                self.kind,
                f"{identity}: site {site_id} status check refused: "
                f"res={status.get('res')} {status.get('res_message', '')}".rstrip(),
            )
        if not status.get("ssl"):
            raise PreconditionError(self.kind, f"{identity}: site {site_id} does not have SSL enabled")
        _log.debug("incapsula_site_ready", secret=identity, site_id=site_id, status=status.get("status", ""))

    async def _post(
        self,
        identity: str,
        path: str,
        form: dict[str, str],
        check_res: bool = True,
    ) -> dict[str, Any]:
        """POST *form* and return the decoded body.

        A non-zero ``res`` is an error unless *check_res* is False, in which
        case the caller inspects it.
        """
        try:
            response = await self._client.post(path, data=form)
        except httpx.TimeoutException as exc:
            raise DestinationError(self.kind, f"{identity}: {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise DestinationError(self.kind, f"{identity}: {path} failed: {exc}") from exc

        if not response.is_success:
            raise DestinationError(
                self.kind,
                f"{identity}: {path} returned HTTP {response.status_code}: {response.text[:200]}",
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise DestinationError(self.kind, f"{identity}: {path} returned a non-JSON body") from exc

        if not isinstance(body, dict):
            raise DestinationError(self.kind, f"{identity}: {path} returned an unexpected body")
        if check_res and str(body.get("res", "")) != "0":
            raise DestinationError(
                self.kind,
                f"{identity}: {path} res={body.get('res')} {body.get('res_message', '')}".rstrip(),
            )
        return body
