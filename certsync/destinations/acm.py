"""AWS Certificate Manager destination.

Secrets annotated ``<operator>/acm-enabled: "true"`` are imported into ACM.
The first import creates a new certificate, tagged with the source secret so
it can be traced back; the returned ARN is written to
``<operator>/acm-certificate-arn`` and later imports re-import in place
against that ARN.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from certsync.destinations.base import DestinationAdapter
from certsync.errors import DestinationError
from certsync.models.certificate import CertificateBundle, Secret
from certsync.secrets.annotations import AnnotationKeys

_log = structlog.get_logger(component="destinations.acm")


class ACMAdapter(DestinationAdapter):
    """Imports certificates into ACM.

    Args:
        keys:           Annotation keys for the configured operator name.
        client_factory: Zero-argument callable returning a boto3 ACM client.
    """

    def __init__(self, keys: AnnotationKeys, client_factory: Callable[[], Any]) -> None:
        self._keys = keys
        self._client_factory = client_factory

    @property
    def kind(self) -> str:
        return "acm"

    @property
    def reference_annotation(self) -> str:
        return self._keys.acm_certificate_arn

    def enabled_for(self, secret: Secret) -> bool:
        return secret.annotations.get(self._keys.acm_enabled) == "true"

    async def sync(
        self,
        bundle: CertificateBundle,
        existing_reference: str | None,
        metadata: dict[str, Any],
    ) -> str:
        if not bundle.chain:
            raise DestinationError(self.kind, f"{bundle.identity}: ACM import requires a certificate chain")
        if not bundle.private_key:
            raise DestinationError(self.kind, f"{bundle.identity}: ACM import requires a private key")

        request = self._build_request(bundle, existing_reference)
        arn = await asyncio.to_thread(self._import, bundle.identity, request)
        _log.info(
            "acm_certificate_imported",
            secret=bundle.identity,
            arn=arn,
            reimport=existing_reference is not None,
        )
        return arn

    def _build_request(self, bundle: CertificateBundle, existing_reference: str | None) -> dict[str, Any]:
        request: dict[str, Any] = {
            "Certificate": bundle.leaf,
            "CertificateChain": bundle.chain,
            "PrivateKey": bundle.private_key,
        }
        if existing_reference:
            request["CertificateArn"] = existing_reference
        else:
            # ACM rejects tags on re-import, so only new certificates are tagged
            request["Tags"] = [{"Key": self._keys.secret_name_tag, "Value": bundle.identity}]
        return request

    def _import(self, identity: str, request: dict[str, Any]) -> str:
        try:
            client = self._client_factory()
            response = client.import_certificate(**request)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "Unknown")
            raise DestinationError(self.kind, f"{identity}: import_certificate failed ({code}): {exc}") from exc
        except BotoCoreError as exc:
            raise DestinationError(self.kind, f"{identity}: import_certificate failed: {exc}") from exc

        arn = response.get("CertificateArn")
        if not arn:
            raise DestinationError(self.kind, f"{identity}: import_certificate returned no CertificateArn")
        return str(arn)
