"""Annotation keys understood by certsync.

Every key is prefixed with the configured operator name, e.g.
``certsync.example.com/acm-enabled``.
"""

from __future__ import annotations

from dataclasses import dataclass

from certsync.models.certificate import Secret


@dataclass(frozen=True)
class AnnotationKeys:
    operator_name: str

    def _key(self, suffix: str) -> str:
        return f"{self.operator_name}/{suffix}"

    @property
    def sync_enabled(self) -> str:
        return self._key("sync-enabled")

    @property
    def acm_enabled(self) -> str:
        return self._key("acm-enabled")

    @property
    def acm_certificate_arn(self) -> str:
        return self._key("acm-certificate-arn")

    @property
    def incapsula_site_id(self) -> str:
        return self._key("incapsula-site-id")

    @property
    def incapsula_secret_name(self) -> str:
        return self._key("incapsula-secret-name")

    @property
    def secret_name_tag(self) -> str:
        """Tag key placed on newly created ACM certificates."""
        return self._key("secret-name")

    def is_sync_enabled(self, secret: Secret) -> bool:
        return secret.annotations.get(self.sync_enabled) == "true"
