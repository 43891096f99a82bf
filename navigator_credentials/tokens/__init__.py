"""Short-lived user tokens kept in an injected in-memory store."""

from .store import TokenRecord, TokenStore
from .janitor import TokenJanitor
from .manager import TokenLifecycleManager

__all__ = [
    "TokenRecord",
    "TokenStore",
    "TokenJanitor",
    "TokenLifecycleManager",
]
