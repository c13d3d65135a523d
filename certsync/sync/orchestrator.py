"""Sync orchestration: one poll-filter-sync-record cycle.

Per cycle:

1. Fetch every secret in the configured namespaces and keep the ones that
   carry TLS material and ``<operator>/sync-enabled: "true"``.
2. For each destination, select the secrets that enable it, decompose their
   bundles and keep those whose leaf differs from the last successful sync.
3. Sync the selected secrets one after another, writing the returned
   reference back to the secret and recording the leaf in the change cache.

Destinations run concurrently.  A failure while handling one secret is
recorded as a SyncOutcome and the next secret is processed; only a failure
to list secrets abandons the cycle.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from certsync.cache.change_cache import ChangeCache
from certsync.destinations.base import DestinationAdapter
from certsync.errors import (
    CertSyncError,
    DestinationError,
    MalformedCertificateError,
    PreconditionError,
    WriteBackError,
)
from certsync.models.certificate import CA_CERT_KEY, TLS_CERT_KEY, TLS_PRIVATE_KEY, CertificateBundle, Secret
from certsync.models.results import CycleReport, OutcomeStatus, SyncOutcome
from certsync.observability.metrics import (
    change_cache_entries,
    cycle_duration_seconds,
    cycles_total,
    secrets_selected,
    sync_total,
)
from certsync.pem import BEGIN_MARKER, decompose
from certsync.secrets.annotations import AnnotationKeys
from certsync.secrets.store import SecretStore

_log = structlog.get_logger(component="sync.orchestrator")


def cache_key(destination: str, identity: str) -> str:
    return f"{destination}:{identity}"


class SyncOrchestrator:
    """Runs sync cycles against a secret store and a set of destinations.

    Args:
        store:        Secret store collaborator.
        destinations: Enabled destination adapters.
        keys:         Annotation keys for the configured operator name.
        namespaces:   Namespaces to poll; ``""`` means all namespaces.
        cache:        Change cache; a fresh one is created when omitted.
        timeout:      Deadline in seconds for each store or destination call.
    """

    def __init__(
        self,
        store: SecretStore,
        destinations: Sequence[DestinationAdapter],
        keys: AnnotationKeys,
        namespaces: Sequence[str] = ("",),
        cache: ChangeCache | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._store = store
        self._destinations = list(destinations)
        self._keys = keys
        self._namespaces = list(namespaces)
        self._cache = cache if cache is not None else ChangeCache()
        self._timeout = timeout
        self._cycle_lock = asyncio.Lock()
        # cache key -> tls.crt bytes that failed to decompose
        self._malformed: dict[str, bytes] = {}
        self.last_report: CycleReport | None = None

    @property
    def cache(self) -> ChangeCache:
        return self._cache

    @property
    def destinations(self) -> list[DestinationAdapter]:
        return list(self._destinations)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleReport | None:
        """Run one cycle.  Returns None if a cycle is already in progress."""
        if self._cycle_lock.locked():
            _log.warning("cycle_skipped", reason="previous cycle still running")
            return None

        async with self._cycle_lock:
            started = time.monotonic()
            report = CycleReport(started_at=datetime.now(tz=UTC))
            try:
                await self._run(report)
            finally:
                report.finished_at = datetime.now(tz=UTC)
                cycle_duration_seconds.observe(time.monotonic() - started)
                change_cache_entries.set(len(self._cache))
                self.last_report = report
            self._summarize(report)
            return report

    async def _run(self, report: CycleReport) -> None:
        try:
            secrets = await self.fetch()
        except (CertSyncError, TimeoutError) as exc:
            self._abandon(report, str(exc) or "timed out listing secrets")
            return
        except Exception as exc:  # noqa: BLE001
            _log.exception("fetch_unexpected_error")
            self._abandon(report, repr(exc))
            return
        report.secrets_fetched = len(secrets)

        results = await asyncio.gather(
            *(self._sync_destination(adapter, secrets, report) for adapter in self._destinations),
            return_exceptions=True,
        )
        for adapter, result in zip(self._destinations, results, strict=True):
            if isinstance(result, BaseException):
                _log.error(
                    "destination_task_crashed",
                    destination=adapter.kind,
                    error=repr(result),
                )
                report.error = f"{adapter.kind}: {result!r}"
        cycles_total.labels(result="failed" if report.error else "completed").inc()

    def _abandon(self, report: CycleReport, error: str) -> None:
        report.error = error
        cycles_total.labels(result="fetch_failed").inc()
        _log.error("cycle_abandoned", error=error)

    async def fetch(self) -> list[Secret]:
        """List candidate secrets: TLS material present and sync enabled."""
        secrets = await asyncio.wait_for(self._store.list(self._namespaces), timeout=self._timeout)
        candidates = [s for s in secrets if s.has_tls_material() and self._keys.is_sync_enabled(s)]
        _log.debug("secrets_fetched", total=len(secrets), candidates=len(candidates))
        return candidates

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(
        self,
        adapter: DestinationAdapter,
        secrets: Sequence[Secret],
        report: CycleReport | None = None,
    ) -> list[tuple[Secret, CertificateBundle]]:
        """Secrets that enable *adapter* and whose leaf changed since the last sync."""
        selected: list[tuple[Secret, CertificateBundle]] = []
        for secret in secrets:
            if not adapter.enabled_for(secret):
                continue
            bundle = self._decompose(adapter, secret, report)
            if bundle is None:
                continue
            if self._cache.has_changed(cache_key(adapter.kind, secret.identity), bundle.leaf):
                selected.append((secret, bundle))
            else:
                _log.debug("secret_unchanged", destination=adapter.kind, secret=secret.identity)
        return selected

    def _decompose(
        self,
        adapter: DestinationAdapter,
        secret: Secret,
        report: CycleReport | None,
    ) -> CertificateBundle | None:
        raw = secret.data[TLS_CERT_KEY]
        try:
            bundle = decompose(
                secret.identity,
                secret.data.get(CA_CERT_KEY),
                raw,
                secret.data[TLS_PRIVATE_KEY],
            )
        except MalformedCertificateError as exc:
            key = cache_key(adapter.kind, secret.identity)
            already_reported = self._malformed.get(key) == raw
            self._malformed[key] = raw
            if not already_reported:
                _log.error("certificate_malformed", destination=adapter.kind, secret=secret.identity, error=exc.reason)
                self._record(report, adapter, secret, OutcomeStatus.MALFORMED, error=str(exc))
            return None
        self._malformed.pop(cache_key(adapter.kind, secret.identity), None)
        return bundle

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def _sync_destination(
        self,
        adapter: DestinationAdapter,
        secrets: Sequence[Secret],
        report: CycleReport,
    ) -> None:
        selected = self.select(adapter, secrets, report)
        report.selected[adapter.kind] = len(selected)
        secrets_selected.labels(destination=adapter.kind).set(len(selected))
        _log.info("destination_selected", destination=adapter.kind, count=len(selected))

        for secret, bundle in selected:
            outcome = await self.sync_one(adapter, secret, bundle)
            report.outcomes.append(outcome)

    async def sync_one(
        self,
        adapter: DestinationAdapter,
        secret: Secret,
        bundle: CertificateBundle,
    ) -> SyncOutcome:
        """Sync one secret to one destination; never raises for per-secret failures."""
        existing = adapter.existing_reference(secret)
        log = _log.bind(destination=adapter.kind, secret=secret.identity)
        log.debug(
            "sync_started",
            certificates=bundle.full_chain.count(BEGIN_MARKER),
            existing_reference=existing or "",
        )

        try:
            reference = await asyncio.wait_for(
                adapter.sync(bundle, existing, adapter.metadata_for(secret)),
                timeout=self._timeout,
            )
        except PreconditionError as exc:
            log.warning("sync_precondition_failed", error=str(exc))
            return self._outcome(adapter, secret, OutcomeStatus.PRECONDITION_FAILED, error=str(exc))
        except DestinationError as exc:
            log.error("sync_failed", error=str(exc))
            return self._outcome(adapter, secret, OutcomeStatus.DESTINATION_ERROR, error=str(exc))
        except TimeoutError:
            error = f"{adapter.kind}: no response within {self._timeout}s; outcome unknown"
            log.error("sync_timed_out", error=error)
            return self._outcome(adapter, secret, OutcomeStatus.DESTINATION_ERROR, error=error)
        except Exception as exc:  # noqa: BLE001
            log.exception("sync_unexpected_error")
            return self._outcome(adapter, secret, OutcomeStatus.DESTINATION_ERROR, error=repr(exc))

        try:
            await self._write_back(adapter, secret, reference)
        except WriteBackError as exc:
            log.error("write_back_failed", reference=reference, error=str(exc))
            return self._outcome(
                adapter, secret, OutcomeStatus.WRITE_BACK_FAILED, reference=reference, error=str(exc)
            )

        self._cache.record(cache_key(adapter.kind, secret.identity), bundle.leaf)
        log.info("sync_succeeded", reference=reference)
        return self._outcome(adapter, secret, OutcomeStatus.SYNCED, reference=reference)

    async def _write_back(self, adapter: DestinationAdapter, secret: Secret, reference: str) -> None:
        annotation = adapter.reference_annotation
        if annotation is None or secret.annotations.get(annotation) == reference:
            return
        updated = dataclasses.replace(secret, annotations={**secret.annotations, annotation: reference})
        try:
            await asyncio.wait_for(self._store.update(updated), timeout=self._timeout)
        except (CertSyncError, TimeoutError) as exc:
            raise WriteBackError(secret.identity, reference, exc) from exc
        except Exception as exc:  # noqa: BLE001
            _log.exception("write_back_unexpected_error", secret=secret.identity)
            raise WriteBackError(secret.identity, reference, exc) from exc

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _outcome(
        self,
        adapter: DestinationAdapter,
        secret: Secret,
        status: OutcomeStatus,
        reference: str = "",
        error: str = "",
    ) -> SyncOutcome:
        sync_total.labels(destination=adapter.kind, outcome=status.value).inc()
        return SyncOutcome(
            destination=adapter.kind,
            identity=secret.identity,
            status=status,
            reference=reference,
            error=error,
        )

    def _record(
        self,
        report: CycleReport | None,
        adapter: DestinationAdapter,
        secret: Secret,
        status: OutcomeStatus,
        error: str = "",
    ) -> None:
        outcome = self._outcome(adapter, secret, status, error=error)
        if report is not None:
            report.outcomes.append(outcome)

    def _summarize(self, report: CycleReport) -> None:
        failures = report.failures
        for failure in failures:
            _log.warning(
                "cycle_failure",
                destination=failure.destination,
                secret=failure.identity,
                status=failure.status.value,
                error=failure.error,
            )
        _log.info(
            "cycle_finished",
            fetched=report.secrets_fetched,
            selected=report.selected,
            synced=len(report.synced),
            failed=len(failures),
            error=report.error or None,
        )
