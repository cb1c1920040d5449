"""Cache capability consumed by the privacy guardian."""

from typing import Optional, Protocol


class AccessCache(Protocol):
    """Key-value cache with per-key expiry (e.g. Redis)."""

    async def get(self, key: str) -> Optional[str]:
        """Return the cached value or None."""
        ...

    async def set(self, key: str, value: str, ttl: int = None) -> bool:
        """Store value, expiring after ttl seconds."""
        ...
