"""Application bootstrap for certsync.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → secret store → destinations
              → orchestrator → sync loop → REST

Shutdown stops components in reverse startup order.  The sync loop is given
a grace period to finish its in-flight cycle before it is cancelled; a
cancelled cycle never records to the change cache, so the next run retries.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from certsync.errors import ConfigurationError
from certsync.models.config import CertSyncConfig
from certsync.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from certsync.destinations.base import DestinationAdapter
    from certsync.sync.orchestrator import SyncOrchestrator
    from certsync.sync.scheduler import PeriodicRunner

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class CertSyncApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self) -> None:
        self.config: CertSyncConfig | None = None

        self._api_client: object | None = None
        self._store: object | None = None
        self._destinations: list[DestinationAdapter] = []
        self._orchestrator: SyncOrchestrator | None = None
        self._runner: PeriodicRunner | None = None
        self._rest_server: object | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        try:
            from certsync.config import load_config

            self.config = load_config()
        except ConfigurationError as exc:
            raise _ComponentError("config", exc) from exc

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info(
            "certsync starting",
            version=_certsync_version(),
            operator_name=self.config.operator_name,
            namespaces=self.config.sync.namespaces,
        )

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_k8s_client()

        # --- 4. Destinations ---------------------------------------------
        await self._start_destinations()

        # --- 5. Orchestrator and sync loop --------------------------------
        await self._start_sync_loop()

        # --- 6. REST API ------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("certsync started", interval=self.config.sync.interval_seconds)

    async def _start_k8s_client(self) -> None:
        """Initialise kubernetes-asyncio from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            from certsync.secrets.store import KubernetesSecretStore

            try:
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")

            api_client = k8s_client.ApiClient()
            self._api_client = api_client
            self._store = KubernetesSecretStore(k8s_client.CoreV1Api(api_client))
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_destinations(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting destinations")
        try:
            from certsync.destinations import build_destinations
            from certsync.secrets.annotations import AnnotationKeys

            keys = AnnotationKeys(self.config.operator_name)
            self._destinations = build_destinations(self.config, keys, self._store)  # type: ignore[arg-type]
        except Exception as exc:
            raise _ComponentError("destinations", exc) from exc
        if not self._destinations:
            raise _ComponentError("destinations", ConfigurationError("no destination enabled"))

    async def _start_sync_loop(self) -> None:
        """Build the orchestrator and launch the periodic sync loop."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting sync loop")
        try:
            from certsync.cache import ChangeCache
            from certsync.secrets.annotations import AnnotationKeys
            from certsync.sync import PeriodicRunner, SyncOrchestrator

            orchestrator = SyncOrchestrator(
                store=self._store,  # type: ignore[arg-type]
                destinations=self._destinations,
                keys=AnnotationKeys(self.config.operator_name),
                namespaces=self.config.sync.namespaces,
                cache=ChangeCache(),
                timeout=float(self.config.sync.timeout_seconds),
            )
            runner = PeriodicRunner(
                orchestrator.run_cycle,
                interval=float(self.config.sync.interval_seconds),
            )
            runner.start()
            self._orchestrator = orchestrator
            self._runner = runner
            self._log.info("sync loop started", destinations=[d.kind for d in self._destinations])
        except Exception as exc:
            raise _ComponentError("sync_loop", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn server for probes, status and metrics."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from certsync.api import create_app

            fastapi_app = create_app(
                orchestrator=self._orchestrator,
                runner=self._runner,
                config=self.config,
            )
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("certsync shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]
        if self._background_tasks:
            _, pending = await asyncio.wait(self._background_tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None

        if self._runner is not None:
            await self._runner.stop(grace=_SHUTDOWN_GRACE_SECONDS)
            self._runner = None

        for destination in reversed(self._destinations):
            try:
                await destination.close()
            except Exception as exc:
                log.error("destination close raised an error", destination=destination.kind, error=str(exc))
        self._destinations = []

        await self._stop_k8s_client()
        log.info("certsync stopped")

    async def _stop_k8s_client(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        if self._api_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._api_client.close()  # type: ignore[attr-defined]
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._api_client = None


def _certsync_version() -> str:
    from certsync import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = CertSyncApp()
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await app.start()
        await shutdown.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
