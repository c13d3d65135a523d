"""In-memory change detection for replicated certificates.

The cache maps a key (``<destination>:<namespace>/<name>``) to the leaf bytes
that were last replicated successfully.  A byte-for-byte comparison of the
leaf is enough to notice a rotation: reissued certificates always differ in
serial number or validity window.

Entries are only ever written after a destination has confirmed the upload
and the reference has been saved; a failed sync leaves the old entry (or no
entry) in place so the next cycle retries.  Entries are never evicted; keys
for deleted secrets are simply never looked up again.
"""

from __future__ import annotations

import threading

import structlog

_log = structlog.get_logger(component="cache.change_cache")


class ChangeCache:
    """Thread-safe map of cache key to last-synced leaf certificate."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._leaves: dict[str, bytes] = {}

    def has_changed(self, key: str, candidate_leaf: bytes) -> bool:
        """Return True if *key* is unknown or its stored leaf differs."""
        with self._lock:
            stored = self._leaves.get(key)
        return stored is None or stored != candidate_leaf

    def record(self, key: str, leaf: bytes) -> None:
        """Store *leaf* as the last successfully synced leaf for *key*."""
        with self._lock:
            replaced = key in self._leaves
            self._leaves[key] = leaf
        _log.debug("change_cache_recorded", key=key, replaced=replaced)

    def __len__(self) -> int:
        with self._lock:
            return len(self._leaves)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._leaves
