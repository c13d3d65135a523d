"""Health, status and metrics API for certsync.

Exposes:
    create_app -- FastAPI application factory.
"""

from certsync.api.app import create_app

__all__ = ["create_app"]
