"""Protocols the use cases depend on instead of concrete services."""

from typing import Optional, Protocol

from starlette.responses import Response


class OAuthStateStore(Protocol):
    """Request-scoped storage for OAuth handshake values."""

    async def put(self, key: str, value: str, ttl: int) -> None:
        ...

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or ``None`` when absent. Raises if the store is unreachable."""
        ...

    async def delete(self, key: str) -> None:
        ...

    async def commit(self, response: Response) -> None:
        """Write pending changes onto the outgoing response."""
        ...
