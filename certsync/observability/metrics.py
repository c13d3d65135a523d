"""Prometheus metrics for certsync."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

sync_total = Counter(
    "certsync_sync_total",
    "Per-secret sync attempts by destination and outcome",
    ["destination", "outcome"],
)

cycles_total = Counter(
    "certsync_cycles_total",
    "Completed sync cycles by result",
    ["result"],
)

cycle_duration_seconds = Histogram(
    "certsync_cycle_duration_seconds",
    "Wall-clock duration of a sync cycle",
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

secrets_selected = Gauge(
    "certsync_secrets_selected",
    "Secrets selected for sync in the last cycle",
    ["destination"],
)

change_cache_entries = Gauge(
    "certsync_change_cache_entries",
    "Entries held in the change cache",
)
