"""Entry point for `python -m certsync`.

Usage:
    python -m certsync
    certsync
"""

from __future__ import annotations

from certsync.app import run

run()
