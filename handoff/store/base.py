"""Key/value store capability shared by the key cache and token store."""

from typing import Protocol


class KeyValueStore(Protocol):
    """Shared, expiring string store visible to every serving process."""

    async def get(self, name: str) -> str | None:
        """Return the live value for ``name`` or None."""
        ...

    async def put(self, name: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``name``, replacing any previous value."""
        ...

    async def add_if_absent(self, name: str, value: str, ttl_seconds: int) -> bool:
        """Store ``value`` only if no live entry exists. Return True if stored."""
        ...

    async def take(self, name: str) -> str | None:
        """Atomically read and delete the live value for ``name``."""
        ...
