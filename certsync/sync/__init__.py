"""Sync loop for certsync.

Submodules:
    orchestrator -- SyncOrchestrator: fetch, filter, decompose, sync, write back, record.
    scheduler    -- PeriodicRunner: fixed-interval, non-overlapping cycle runner.
"""

from certsync.sync.orchestrator import SyncOrchestrator
from certsync.sync.scheduler import PeriodicRunner

__all__ = ["PeriodicRunner", "SyncOrchestrator"]
