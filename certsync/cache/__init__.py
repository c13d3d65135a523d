"""Cache layer for certsync.

Submodules:
    change_cache -- Last successfully synced leaf per destination and secret.
"""

from certsync.cache.change_cache import ChangeCache

__all__ = ["ChangeCache"]
